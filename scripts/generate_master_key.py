#!/usr/bin/env python3
"""
Generate a random master key for MASTER_KEY_HEX.

Prints 32 random bytes as 64 hex characters. Store the output in a secrets
manager or a local .env file; never commit it.

Usage:
    python scripts/generate_master_key.py
    python scripts/generate_master_key.py --env >> .env
"""
import argparse
import secrets

KEY_BYTES = 32


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a master key")
    parser.add_argument(
        "--env",
        action="store_true",
        help="Print as a MASTER_KEY_HEX=... line",
    )
    args = parser.parse_args()

    key_hex = secrets.token_hex(KEY_BYTES)
    if args.env:
        print(f"MASTER_KEY_HEX={key_hex}")
    else:
        print(key_hex)


if __name__ == "__main__":
    main()
