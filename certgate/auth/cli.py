"""certgate-token — mint a bearer JWT for a key.

Usage:
    certgate-token --key-id event_team_3f9a0c1b7d2e4a65 --secret <secret> [--ttl 3600]
    certgate-token --bootstrap [--ttl 300]      # signs with CERTGATE_BOOTSTRAP_SECRET

The secret may also come from the CERTGATE_TOKEN_SECRET environment variable so
it does not end up in shell history. The token is printed to stdout.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence

from certgate.auth.tokens import issue_token
from certgate.constants import BOOTSTRAP_KEY_ID, DEFAULT_TOKEN_TTL_SECONDS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certgate-token",
        description="Sign a short-lived certgate bearer token",
    )
    who = parser.add_mutually_exclusive_group(required=True)
    who.add_argument("--key-id", help="keyId to embed in the token")
    who.add_argument(
        "--bootstrap",
        action="store_true",
        help="Sign as the bootstrap credential (secret from CERTGATE_BOOTSTRAP_SECRET)",
    )
    parser.add_argument("--secret", help="Signing secret (default: $CERTGATE_TOKEN_SECRET)")
    parser.add_argument(
        "--ttl",
        type=int,
        default=DEFAULT_TOKEN_TTL_SECONDS,
        help=f"Lifetime in seconds (default: {DEFAULT_TOKEN_TTL_SECONDS})",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.bootstrap:
        key_id = BOOTSTRAP_KEY_ID
        secret = args.secret or os.environ.get("CERTGATE_BOOTSTRAP_SECRET")
    else:
        key_id = args.key_id
        secret = args.secret or os.environ.get("CERTGATE_TOKEN_SECRET")

    if not secret:
        print("certgate-token: no signing secret given", file=sys.stderr)
        return 2
    if args.ttl <= 0:
        print("certgate-token: --ttl must be positive", file=sys.stderr)
        return 2

    print(issue_token(key_id, secret, expires_in=args.ttl))
    return 0


if __name__ == "__main__":
    sys.exit(main())
