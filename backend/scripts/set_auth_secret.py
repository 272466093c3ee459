#!/usr/bin/env python3
"""Keep the token-signing secret in the system keychain.

Generates a random ``AUTH_SECRET_KEY`` (or stores one passed with
``--value``) so it does not have to sit in ``.env``. An existing keychain
entry is left alone unless ``--rotate`` is given. Rotating invalidates
every token signed with the old secret.

Usage:
    python -m scripts.set_auth_secret                # generate if missing
    python -m scripts.set_auth_secret --rotate       # replace the stored secret
    python -m scripts.set_auth_secret --value SECRET # store a given secret
    python -m scripts.set_auth_secret --delete       # remove it from the keychain
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.credential_manager import (
    delete_credential,
    generate_secret,
    get_credential,
    set_credential,
)

KEY = "AUTH_SECRET_KEY"


def store_secret(value: str | None = None, *, rotate: bool = False) -> bool:
    """Store ``value`` (or a generated secret) unless one is already present.

    Args:
        value: Secret to store. A random one is generated when omitted.
        rotate: Replace an existing keychain entry.

    Returns:
        ``True`` if the keychain holds a secret afterwards.
    """
    existing = get_credential(KEY)
    if existing and not rotate:
        print(f"{KEY} is already in the keychain (use --rotate to replace it).")
        return True

    if not set_credential(KEY, value or generate_secret()):
        print(f"Failed to store {KEY} in the keychain.")
        return False

    if existing:
        print(f"Rotated {KEY} in the keychain.")
        print("Tokens signed with the previous secret are no longer valid.")
    else:
        print(f"Stored {KEY} in the keychain.")
    return True


def remove_secret() -> bool:
    if delete_credential(KEY):
        print(f"Removed {KEY} from the keychain.")
        return True
    print(f"{KEY} was not removed (not stored, or no keyring backend).")
    return False


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Store the token-signing secret in the system keychain"
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--rotate",
        action="store_true",
        help="Replace an existing secret (signs out every user)",
    )
    action.add_argument(
        "--delete",
        action="store_true",
        help="Remove the secret from the keychain",
    )
    parser.add_argument(
        "--value",
        help="Secret to store instead of a generated one",
    )

    args = parser.parse_args(argv)
    if args.delete:
        if args.value:
            parser.error("--value cannot be combined with --delete")
        ok = remove_secret()
    else:
        ok = store_secret(args.value, rotate=args.rotate)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
