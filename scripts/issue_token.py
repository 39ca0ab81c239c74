"""Issue a bearer token for local testing of the upload endpoints."""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from src.tubely.auth.auth_service import TokenService
from src.tubely.config import load_config


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print a signed access token for a user id.")
    parser.add_argument("user_id", help="Subject placed in the token.")
    parser.add_argument("--ttl-hours", type=int, default=None, help="Override JWT_TTL_HOURS.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    config = load_config()
    ttl_hours = args.ttl_hours if args.ttl_hours is not None else config.jwt_ttl_hours
    service = TokenService(signing_key=config.jwt_secret, token_ttl=timedelta(hours=ttl_hours))
    print(service.issue_token(args.user_id))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
