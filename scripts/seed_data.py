#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from app.core.config import DEV_BOOTSTRAP_ALLOW, IS_DEV  # noqa: E402
from app.core.database import Base, SessionLocal, engine  # noqa: E402
import app.models  # noqa: E402,F401
from app.services.bootstrap import bootstrap_admin, ensure_default_roles, seed_sample_data  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Popula o banco de DEV com roles, admin e lojas de exemplo.")
    parser.add_argument("--admin-email", default="admin@wildeats.com", help="Email do admin")
    parser.add_argument("--admin-password", help="Senha do admin (omitir para não criar)")
    parser.add_argument("--password", default="password123", help="Senha dos usuários de exemplo")
    parser.add_argument("--skip-samples", action="store_true", help="Cria só roles e admin")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Roda create_all antes (apenas SQLite/dev; em produção use alembic upgrade head)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Permite executar sem DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print(
            "Seed DEV desabilitado. "
            "Defina DEV_BOOTSTRAP_ALLOW=1 ou use --force."
        )
        return 1

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        ensure_default_roles(db)
        if args.admin_password:
            bootstrap_admin(db, email=args.admin_email, password=args.admin_password)
        created = 0 if args.skip_samples else seed_sample_data(db, password=args.password)
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    print(f"Seed concluído: lojas criadas={created}")
    if IS_DEV and not args.skip_samples:
        print(f"Resumo DEV -> vendedores shop.*@wildeats.com | cliente customer@wildeats.com | Senha: {args.password}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
