"""
Command-line wrapper around the validation engine.

Usage:
    python main.py check --challenge hello.json --source hello.py
    python main.py check --challenge hello.json --source hello.py --config config.json --details
    python main.py sample-config --output config.json
"""

import sys
import argparse
import logging
from pathlib import Path

from .challenges import load_challenge
from .config_loader import load_config, create_sample_config
from .engine import ValidationEngine
from .harness import format_verdict
from .models import SourceUnit


def _check(args) -> int:
    try:
        challenge = load_challenge(Path(args.challenge))
        config = challenge.apply_overrides(load_config(Path(args.config) if args.config else None))
        source_text = Path(args.source).read_text(encoding='utf-8')
    except (ValueError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    print(f"{challenge.title} ({challenge.id})")
    engine = ValidationEngine(config)
    result = engine.validate(SourceUnit(challenge.entry_name, source_text), challenge.tests)

    if not result.success:
        print("Compilation failed:")
        for diagnostic in result.diagnostics:
            print(f"  {diagnostic}")
        return 1

    print(format_verdict(result.verdict, show_details=args.details))
    return 0 if result.verdict.all_passed else 1


def _sample_config(args) -> int:
    create_sample_config(Path(args.output))
    print(f"Sample configuration created at: {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate a submission against a challenge's test cases.")
    parser.add_argument("--verbose", action="store_true", help="Show engine log messages")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Compile and test a source file")
    check.add_argument("--challenge", required=True, help="Path to challenge file (.json)")
    check.add_argument("--source", required=True, help="Path to the submission (.py)")
    check.add_argument("--config", help="Path to engine config file (.json)")
    check.add_argument("--details", action="store_true", help="Show expected/actual output for failed tests")
    check.set_defaults(func=_check)

    sample = subparsers.add_parser("sample-config", help="Write a sample engine configuration")
    sample.add_argument("--output", default="config.json", help="Where to write the sample config")
    sample.set_defaults(func=_sample_config)

    return parser


def main(argv=None) -> int:
    """Entry point for the command-line wrapper."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
