"""
Rule Compiler - Validates a merchant rule sheet and compiles it to the
configuration JSON stored on the discount metafield.

Reads pricing_rules.csv (or .xlsx), validates every row with the same
decoder the engine uses, and writes compiled_config.json.
"""
import json
import logging
from pathlib import Path
from typing import Any, Optional
from datetime import datetime
from dataclasses import dataclass, field

import pandas as pd

from ..engine.decoder import decode_rule, load_blob, parse_strategy
from ..engine.models import ApplicationStrategy, PricingRule
from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

SHEET_COLUMNS = [
    'id', 'customerTags', 'productIds', 'collectionIds',
    'discountType', 'discountValue', 'priority', 'isActive',
]
REQUIRED_COLUMNS = {'id', 'discountType', 'discountValue'}


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rule_count: int = 0


def read_rule_sheet(source: Path) -> pd.DataFrame:
    """Load the rule sheet as strings, blanks kept as empty strings."""
    if source.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(source, dtype=str, keep_default_na=False)
    else:
        df = pd.read_csv(source, dtype=str, keep_default_na=False)

    # Normalize headers and cells
    df.columns = [str(c).strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def row_to_raw_rule(row: dict) -> dict:
    """Shape one sheet row like a configuration rule entry."""
    raw = {}
    for column in SHEET_COLUMNS:
        value = row.get(column, '')
        if value == '':
            continue
        raw[column] = value
    return raw


def shadowed_rules(rules: list[PricingRule]) -> list[tuple[PricingRule, PricingRule]]:
    """
    Pairs (winner, shadowed) where both rules target exactly the same
    customers, products and collections: under First the shadowed rule
    can never apply.
    """
    pairs = []
    winners = {}
    for rule in sorted((r for r in rules if r.is_active), key=lambda r: r.sort_key):
        scope = (rule.customer_tags, rule.product_ids, rule.collection_ids)
        if scope in winners:
            pairs.append((winners[scope], rule))
        else:
            winners[scope] = rule
    return pairs


def collect_warnings(rules: list[PricingRule], strategy: ApplicationStrategy) -> list[str]:
    warnings = []
    for rule in rules:
        if not rule.is_active:
            warnings.append(f"Rule '{rule.id}' is inactive and will never match")
        elif rule.discount_value == 0:
            warnings.append(f"Rule '{rule.id}' has a zero discount value")
    if strategy is ApplicationStrategy.FIRST:
        for winner, shadowed in shadowed_rules(rules):
            warnings.append(
                f"Rule '{shadowed.id}' is shadowed by '{winner.id}' (same scope, higher precedence)"
            )
    return warnings


def validate_configuration(blob: Any) -> ValidationResult:
    """
    Validate a configuration blob, reporting every problem without raising.
    """
    result = ValidationResult(valid=True)

    try:
        data = load_blob(blob) or {}
        raw_rules = data.get('pricingRules')
        if raw_rules is None:
            raw_rules = []
        if not isinstance(raw_rules, list):
            raise ConfigError("pricingRules must be a list")
        strategy = parse_strategy(data.get('discountApplicationStrategy'))
    except ConfigError as e:
        result.valid = False
        result.errors.append(str(e))
        return result

    rules = []
    seen_ids = set()
    for index, raw in enumerate(raw_rules):
        try:
            rule = decode_rule(raw, index)
            if rule.id in seen_ids:
                raise ConfigError("duplicate rule id", index, rule.id)
        except ConfigError as e:
            result.errors.append(str(e))
            continue
        seen_ids.add(rule.id)
        rules.append(rule)

    result.valid = not result.errors
    result.rule_count = len(rules)
    result.warnings.extend(collect_warnings(rules, strategy))
    return result


def compile_rules(
    source: Path,
    output_json: Path,
    strategy: ApplicationStrategy = ApplicationStrategy.FIRST,
    verbose: bool = True,
) -> tuple[bool, list[PricingRule], list[str]]:
    """
    Compile a rule sheet to configuration JSON.

    Returns (success, rules, errors). Nothing is written when any row fails.
    """
    all_errors = []
    rules = []

    if not source.exists():
        all_errors.append(f"Rules file not found: {source}")
        return False, [], all_errors

    df = read_rule_sheet(source)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        all_errors.append(f"Missing required columns: {', '.join(sorted(missing))}")
        return False, [], all_errors

    seen_ids = set()
    for offset, row in enumerate(df.to_dict(orient='records')):
        line_num = offset + 2  # 1-indexed, after the header row
        if not any(row.values()):
            continue
        try:
            rule = decode_rule(row_to_raw_rule(row))
        except ConfigError as e:
            all_errors.append(f"Line {line_num}: {e}")
            continue
        if rule.id in seen_ids:
            all_errors.append(f"Line {line_num}: duplicate rule id '{rule.id}'")
            continue
        seen_ids.add(rule.id)
        rules.append(rule)

    if all_errors:
        if verbose:
            for err in all_errors:
                logger.error("Validation error: %s", err)
        return False, rules, all_errors

    rules.sort(key=lambda r: r.sort_key)

    if verbose:
        for warning in collect_warnings(rules, strategy):
            logger.warning(warning)

    output_data = {
        "compiledAt": datetime.now().isoformat(),
        "sourceFile": str(source),
        "totalRules": len(rules),
        "activeRules": sum(1 for r in rules if r.is_active),
        "discountApplicationStrategy": strategy.value,
        "pricingRules": [rule.to_config_dict() for rule in rules],
    }

    output_json.parent.mkdir(parents=True, exist_ok=True)
    with open(output_json, 'w', encoding='utf-8') as f:
        json.dump(output_data, f, indent=2)

    if verbose:
        logger.info("Compiled %d rules (%d active) → %s", len(rules), output_data['activeRules'], output_json)

    return True, rules, []


def load_compiled_config(path: Path) -> Optional[dict]:
    """Read a compiled configuration file, or None if it was never built."""
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main():
    """CLI entry point."""
    import sys
    from rich.logging import RichHandler
    from ..config.settings import get_settings

    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler(rich_tracebacks=True)])

    settings = get_settings()
    logger.info("Compiling pricing rules from %s", settings.rules_source)
    success, _, errors = compile_rules(settings.rules_source, settings.compiled_config)

    if not success:
        logger.error("Compilation failed with %d errors", len(errors))
        sys.exit(1)


if __name__ == "__main__":
    main()
