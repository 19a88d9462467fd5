"""Command-line interface for xlsxcore."""

import argparse
import logging
import sys
from pathlib import Path

from .config import settings
from .errors import XlsxCoreError

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="xlsxcore - OOXML spreadsheet reference codec, shift engine and decryption"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Decrypt command
    decrypt_parser = subparsers.add_parser(
        "decrypt", help="Decrypt a password-protected workbook"
    )
    decrypt_parser.add_argument("input", type=Path, help="Encrypted workbook")
    decrypt_parser.add_argument("output", type=Path, help="Where to write the plain package")
    decrypt_parser.add_argument(
        "--password", "-p", default="", help="Workbook password (default: empty)"
    )

    # Inspect command
    inspect_parser = subparsers.add_parser(
        "inspect", help="Show whether a file is encrypted and how"
    )
    inspect_parser.add_argument("input", type=Path, help="Workbook to inspect")

    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.log_level)

    if args.command == "decrypt":
        run_decrypt(args.input, args.output, args.password)
    elif args.command == "inspect":
        run_inspect(args.input)
    else:
        parser.print_help()
        sys.exit(1)


def run_decrypt(input_path: Path, output_path: Path, password: str):
    """Decrypt ``input_path`` into ``output_path``."""
    from .crypto import decrypt, is_encrypted

    try:
        raw = input_path.read_bytes()
        if not is_encrypted(raw):
            print(f"{input_path} is not an encrypted workbook")
            sys.exit(1)
        package = decrypt(raw, password)
    except (OSError, XlsxCoreError) as e:
        logger.error(f"Decryption of {input_path} failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)

    if not package:
        print("Encryption mechanism is not supported, nothing written.")
        sys.exit(1)

    output_path.write_bytes(package)
    print(f"Wrote {len(package)} bytes to {output_path}")


def run_inspect(input_path: Path):
    """Print the container type and encryption mechanism of ``input_path``."""
    from .crypto import encryption_mechanism, extract_parts, is_encrypted

    try:
        raw = input_path.read_bytes()
        if not is_encrypted(raw):
            print(f"{input_path}: not encrypted")
            return
        encryption_info, _ = extract_parts(raw)
        mechanism = encryption_mechanism(encryption_info)
    except (OSError, XlsxCoreError) as e:
        logger.error(f"Inspection of {input_path} failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)

    print(f"{input_path}: encrypted ({mechanism})")


if __name__ == "__main__":
    main()
