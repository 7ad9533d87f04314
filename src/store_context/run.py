"""
CLI runner for store-context.

Usage:
    python -m store_context.run [OPTIONS]

    # Interactive mode: prompt for store URLs until the user quits
    python -m store_context.run

    # Look up one or more stores and exit
    python -m store_context.run --store allbirds.com --store "Apple Store"

    # Same, printed as JSON
    python -m store_context.run --store allbirds.com --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .config import DEFAULT_CONFIG_PATH, load_config
from .lookup import LookupService
from .models import (
    MAX_IDENTIFIER_LENGTH,
    ApiError,
    ConfigurationError,
    InvalidInputError,
    LookupResult,
    RemoteServiceError,
    StoreContextError,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("store-context")

RULE_WIDTH = 50


def format_result(result: LookupResult) -> str:
    """Render a result as the console block shown to shoppers."""
    rule = "=" * RULE_WIDTH
    generated = result.generated_ts.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"\nStore Information: {result.identifier}\n{rule}\n"
        f"{result.text}\n"
        f"{rule}\nGenerated: {generated}\n"
    )


def describe_error(error: Exception) -> str:
    """Turn an error into a message a user can act on."""
    if isinstance(error, ApiError):
        if error.status_code == 401:
            return "Invalid API key. Please check your .env file."
        if error.status_code == 429:
            return "Rate limit exceeded. Please try again later."
        return f"API Error: {error.message}"
    if isinstance(error, RemoteServiceError):
        return "Network Error: Please check your internet connection."
    if isinstance(error, InvalidInputError):
        return f"Invalid Input: {error.message}"
    if isinstance(error, ConfigurationError):
        return f"Configuration Error: {error.message}"
    return f"Unexpected error: {error}"


def check_input(value: str) -> str | None:
    """Return a prompt-level complaint about the input, or None if it is usable."""
    if not value.strip():
        return "Please enter a store URL"
    if len(value.strip()) > MAX_IDENTIFIER_LENGTH:
        return f"Store URL is too long (max {MAX_IDENTIFIER_LENGTH} characters)"
    return None


def ask(prompt: str) -> str:
    """Read a line from stdin on the main thread, so Ctrl-C interrupts it."""
    return input(prompt)


def confirm(prompt: str, default: bool = True) -> bool:
    """Yes/no question; an empty answer takes the default."""
    suffix = " [Y/n] " if default else " [y/N] "
    answer = ask(prompt + suffix).strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def run_interactive(service: LookupService, runner: asyncio.Runner) -> None:
    """
    Prompt for stores until the user declines to continue.

    Prompts block on the main thread; each lookup runs on the shared runner.
    """
    print("\nStore Information Finder\n")
    print("Get credible information about any store using AI\n")

    keep_going = True
    while keep_going:
        store_name = ask("Enter store URL: ")
        complaint = check_input(store_name)
        if complaint:
            print(complaint)
            continue

        try:
            print("Getting store information...")
            result = runner.run(service.lookup(store_name))
            print(format_result(result))
            keep_going = confirm("Would you like to search for another store?")
            if keep_going:
                print("\n" + "-" * RULE_WIDTH + "\n")
        except StoreContextError as e:
            logger.debug("Lookup failed", exc_info=True)
            print(describe_error(e))
            keep_going = confirm("Would you like to try again?")

    print("\nThank you for using Store Information Finder!\n")


async def run_batch(
    service: LookupService, identifiers: list[str]
) -> list[LookupResult | StoreContextError]:
    """
    Look up several stores concurrently.

    Returns one entry per identifier, in argument order: the result, or the
    error that lookup raised.
    """
    outcomes = await asyncio.gather(
        *(service.lookup(identifier) for identifier in identifiers),
        return_exceptions=True,
    )
    results: list[LookupResult | StoreContextError] = []
    for identifier, outcome in zip(identifiers, outcomes, strict=True):
        if isinstance(outcome, StoreContextError):
            logger.error(f"Lookup failed for {identifier!r}: {outcome.message}")
        elif isinstance(outcome, BaseException):
            raise outcome
        results.append(outcome)
    return results


def _batch_payload(identifier: str, outcome: LookupResult | StoreContextError) -> dict[str, Any]:
    if isinstance(outcome, LookupResult):
        return outcome.to_dict()
    return {
        "identifier": identifier,
        "error": outcome.error_type.value,
        "message": outcome.message,
    }


async def _run_batch_mode(service: LookupService, stores: list[str], as_json: bool) -> int:
    outcomes = await run_batch(service, stores)
    if as_json:
        payload = [
            _batch_payload(identifier, outcome)
            for identifier, outcome in zip(stores, outcomes, strict=True)
        ]
        print(json.dumps(payload, indent=2))
    else:
        for outcome in outcomes:
            if isinstance(outcome, LookupResult):
                print(format_result(outcome))
            else:
                print(describe_error(outcome))
    return 0 if all(isinstance(o, LookupResult) for o in outcomes) else 1


async def _close_client(service: LookupService) -> None:
    close = getattr(service.client, "close", None)
    if close is not None:
        await close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="store-context: Trust-building store descriptions for shoppers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Interactive mode
    python -m store_context.run

    # Look up stores and exit
    python -m store_context.run --store allbirds.com --store warbyparker.com

    # Use a specific config file
    python -m store_context.run --config store_context.yaml --store allbirds.com
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--store",
        action="append",
        default=[],
        help="Store name or URL to look up (repeatable); skips interactive mode",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print --store results as JSON (requires --store)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    if args.json and not args.store:
        parser.error("--json requires at least one --store")

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv(find_dotenv(usecwd=True))

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(e.message)
        logger.info("Please ensure you have created a .env file with your OpenAI API key.")
        return 1

    logger.debug(f"Config: {config.to_dict()}")

    service = LookupService(config)
    try:
        with asyncio.Runner() as runner:
            try:
                if not args.store:
                    run_interactive(service, runner)
                    return 0
                return runner.run(_run_batch_mode(service, args.store, args.json))
            finally:
                runner.run(_close_client(service))
    except (KeyboardInterrupt, EOFError):
        print("\nGoodbye!")
        return 0


if __name__ == "__main__":
    sys.exit(main())
