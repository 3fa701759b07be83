"""
Tests for the rule sheet compiler and configuration validation.
"""
import json
from decimal import Decimal

import pandas as pd

from b2b_pricing.engine import ApplicationStrategy, decode_configuration
from b2b_pricing.rules.compile_rules import compile_rules, validate_configuration

from conftest import config_rule

HEADER = "id,customerTags,productIds,collectionIds,discountType,discountValue,priority,isActive\n"


def write_sheet(tmp_path, body, name="pricing_rules.csv"):
    path = tmp_path / name
    path.write_text(HEADER + body, encoding="utf-8")
    return path


def test_compile_valid_sheet(tmp_path):
    source = write_sheet(tmp_path, (
        "wholesale-base,wholesale,,,percentage,10,10,true\n"
        "vip-boots,\"vip,gold\",p1,,fixed,5.00,2,true\n"
        "old,distributor,,,percentage,25,1,false\n"
    ))
    output = tmp_path / "out" / "compiled_config.json"

    success, rules, errors = compile_rules(source, output, verbose=False)

    assert success, errors
    assert [r.id for r in rules] == ["old", "vip-boots", "wholesale-base"]
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["totalRules"] == 3
    assert data["activeRules"] == 2
    assert data["discountApplicationStrategy"] == "First"
    assert data["pricingRules"][1]["customerTags"] == ["gold", "vip"]


def test_compiled_output_decodes_back(tmp_path):
    source = write_sheet(tmp_path, "r1,wholesale,,c1,percentage,12.5,3,\n")
    output = tmp_path / "compiled_config.json"
    compile_rules(source, output, strategy=ApplicationStrategy.ALL, verbose=False)

    rule_set = decode_configuration(output.read_text(encoding="utf-8"), strict=True)
    assert rule_set.strategy is ApplicationStrategy.ALL
    assert rule_set.rules[0].collection_ids == frozenset({"c1"})
    assert rule_set.rules[0].is_active is True


def test_compiled_value_keeps_full_precision(tmp_path):
    source = write_sheet(tmp_path, "exact,,,,percentage,12.345678901234567890,0,true\n")
    output = tmp_path / "compiled_config.json"
    compile_rules(source, output, verbose=False)

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["pricingRules"][0]["discountValue"] == "12.34567890123456789"
    rule_set = decode_configuration(output.read_text(encoding="utf-8"), strict=True)
    assert rule_set.rules[0].discount_value == Decimal("12.34567890123456789")


def test_compile_reports_row_errors(tmp_path):
    source = write_sheet(tmp_path, (
        "good,,,,fixed,1,0,true\n"
        "bad-type,,,,discount,1,0,true\n"
        "too-much,,,,percentage,120,0,true\n"
        "good,,,,fixed,2,0,true\n"
    ))
    output = tmp_path / "compiled_config.json"

    success, _, errors = compile_rules(source, output, verbose=False)

    assert not success
    assert len(errors) == 3
    assert errors[0].startswith("Line 3:")
    assert errors[1].startswith("Line 4:")
    assert "duplicate" in errors[2]
    assert not output.exists()


def test_compile_missing_file(tmp_path):
    success, rules, errors = compile_rules(tmp_path / "nope.csv", tmp_path / "out.json", verbose=False)
    assert not success
    assert rules == []
    assert "not found" in errors[0]


def test_compile_missing_columns(tmp_path):
    source = tmp_path / "rules.csv"
    source.write_text("id,priority\nr1,1\n", encoding="utf-8")
    success, _, errors = compile_rules(source, tmp_path / "out.json", verbose=False)
    assert not success
    assert "discountType" in errors[0]


def test_compile_xlsx_sheet(tmp_path):
    source = tmp_path / "pricing_rules.xlsx"
    pd.DataFrame([{
        "id": "x1", "customerTags": "wholesale", "productIds": "", "collectionIds": "",
        "discountType": "percentage", "discountValue": "10", "priority": "1", "isActive": "true",
    }]).to_excel(source, index=False)

    success, rules, errors = compile_rules(source, tmp_path / "out.json", verbose=False)
    assert success, errors
    assert rules[0].customer_tags == frozenset({"wholesale"})


class TestValidateConfiguration:

    def test_valid_configuration(self):
        result = validate_configuration({"pricingRules": [config_rule()]})
        assert result.valid
        assert result.errors == []
        assert result.rule_count == 1

    def test_collects_every_error(self):
        result = validate_configuration({"pricingRules": [
            config_rule("a", discount_type="nope"),
            config_rule("b", value=-1),
            config_rule("c"),
        ]})
        assert not result.valid
        assert len(result.errors) == 2
        assert result.rule_count == 1

    def test_warnings(self):
        result = validate_configuration({"pricingRules": [
            config_rule("winner", priority=1),
            config_rule("loser", priority=2),
            config_rule("off", tags=["x"], active=False),
            config_rule("zero", tags=["y"], value=0),
        ]})
        assert result.valid
        assert any("'loser' is shadowed by 'winner'" in w for w in result.warnings)
        assert any("'off' is inactive" in w for w in result.warnings)
        assert any("'zero' has a zero discount value" in w for w in result.warnings)

    def test_no_shadow_warning_under_all(self):
        result = validate_configuration({
            "pricingRules": [config_rule("a", priority=1), config_rule("b", priority=2)],
            "discountApplicationStrategy": "All",
        })
        assert result.warnings == []

    def test_malformed_configuration(self):
        result = validate_configuration("{broken")
        assert not result.valid
        assert "not valid JSON" in result.errors[0]

    def test_pricing_rules_must_be_a_list(self):
        for value in ({}, "", 0):
            result = validate_configuration({"pricingRules": value})
            assert not result.valid
            assert "must be a list" in result.errors[0]

    def test_missing_pricing_rules_is_empty(self):
        result = validate_configuration({"pricingRules": None})
        assert result.valid
        assert result.rule_count == 0
