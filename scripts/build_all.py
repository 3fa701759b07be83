#!/usr/bin/env python
"""
Build pipeline - compiles the rule sheet and runs the test suite.

Usage:
    python scripts/build_all.py
"""
import logging
import subprocess
import sys
from pathlib import Path

from rich.logging import RichHandler

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from b2b_pricing.config.settings import get_settings
from b2b_pricing.rules.compile_rules import compile_rules

logger = logging.getLogger("build_all")


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler()])
    settings = get_settings()

    logger.info("[1/2] Compiling pricing rules from %s", settings.rules_source)
    success, rules, errors = compile_rules(settings.rules_source, settings.compiled_config)

    if not success:
        logger.error("BUILD FAILED")
        for error in errors:
            logger.error("  %s", error)
        sys.exit(1)

    logger.info("[2/2] Running tests...")
    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-q', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        logger.error("TESTS FAILED")
        sys.exit(1)

    active = sum(1 for r in rules if r.is_active)
    logger.info("BUILD COMPLETE: %d rules (%d active) → %s", len(rules), active, settings.compiled_config)


if __name__ == "__main__":
    main()
