#!/usr/bin/env python3
"""
AI Asset Generator

Interactive terminal tool for generating images with OpenAI, refining
earlier generations and managing a reusable system prompt.

Usage:
    asset-generator
    asset-generator --log-level DEBUG

Requirements:
    - OPENAI_API_KEY in the environment or a .env file (asked for on first run)
    - Optional: ASSET_GENERATOR_MODEL, ASSET_GENERATOR_LEGACY_MODEL
"""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape

from credentials import CredentialValidationFailed
from menu import RichMenu, console
from session import AssetGeneratorSession


def setup_logging(log_level: str = "WARNING") -> None:
    """Send log records to the console through rich."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[RichHandler(console=console)],
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate and refine images with OpenAI.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    load_dotenv()

    try:
        return AssetGeneratorSession(RichMenu()).run()
    except CredentialValidationFailed:
        console.print("\n❌ [red]No valid API key configured. Exiting.[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\nBye.")
        return 130
    except Exception as e:
        logging.getLogger(__name__).exception("Unhandled error in session")
        console.print(f"[red]An error occurred:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
