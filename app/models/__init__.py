from app.models.user import Role, User, user_roles
from app.models.shop import Shop
from app.models.menu_item import MenuItem
from app.models.menu_item_options import MenuItemAddon, MenuItemFlavor, MenuItemVariant
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.shop_queue_counter import ShopQueueCounter
from app.models.notification import Notification
