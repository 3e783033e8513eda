"""
Computed values for ``custom`` field mappings.

Each rule receives the resolution context and returns a raw value; the
resolver stringifies it and applies any declared transform afterwards.
"""

from typing import Any, Callable, Dict, Optional

from modules.order_forms.core.types import CustomRule
from modules.order_forms.mappers.context import ResolutionContext, get_nested_value

CustomRuleFunc = Callable[[ResolutionContext], Any]

# Formatted address/city rules: party prefix -> project property
PARTY_COMPANIES: Dict[str, str] = {
    "engineer": "engineer",
    "masonry": "masonryCompany",
    "architect": "architect",
    "owner": "owner",
}

UNKNOWN_NUMBER = "??"


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _number_or_unknown(value: Any) -> str:
    return str(value) if _present(value) else UNKNOWN_NUMBER


def current_date(ctx: ResolutionContext) -> Any:
    return ctx.today


def composite_part_number(ctx: ResolutionContext) -> str:
    project_number = _number_or_unknown(get_nested_value(ctx.project, "projectNumber"))
    part_number = _number_or_unknown(get_nested_value(ctx.part, "partNumber"))
    return f"{project_number}-{part_number}"


def composite_order_list_number(ctx: ResolutionContext) -> str:
    list_number = _number_or_unknown(get_nested_value(ctx.order_list, "listNumber"))
    return f"{composite_part_number(ctx)}.{list_number}"


def formatted_address(company_key: str) -> CustomRuleFunc:
    """Street of a project company, falling back to its legacy address."""

    def rule(ctx: ResolutionContext) -> str:
        company = get_nested_value(ctx.project, company_key)
        street = get_nested_value(company, "street")
        if _present(street):
            return str(street)
        address = get_nested_value(company, "address")
        return str(address) if _present(address) else ""

    return rule


def formatted_city(company_key: str) -> CustomRuleFunc:
    """``<prefix>-<postalCode> <city>``, or whichever part is known."""

    def rule(ctx: ResolutionContext) -> str:
        company = get_nested_value(ctx.project, company_key)
        postal_code = get_nested_value(company, "postalCode")
        city = get_nested_value(company, "city")

        if _present(postal_code) and _present(city):
            return f"{ctx.country_prefix}-{postal_code} {city}"
        if _present(postal_code):
            return str(postal_code)
        if _present(city):
            return str(city)
        return ""

    return rule


def _build_rules() -> Dict[CustomRule, CustomRuleFunc]:
    rules: Dict[CustomRule, CustomRuleFunc] = {
        CustomRule.CURRENT_DATE: current_date,
        CustomRule.COMPOSITE_PART_NUMBER: composite_part_number,
        CustomRule.COMPOSITE_ORDER_LIST_NUMBER: composite_order_list_number,
    }
    for party, company_key in PARTY_COMPANIES.items():
        rules[CustomRule(f"{party}FormattedAddress")] = formatted_address(company_key)
        rules[CustomRule(f"{party}FormattedCity")] = formatted_city(company_key)
    return rules


CUSTOM_RULES: Dict[CustomRule, CustomRuleFunc] = _build_rules()


def get_custom_rule(name: str) -> Optional[CustomRuleFunc]:
    """Look up a rule by name; None for names outside the closed set."""
    try:
        return CUSTOM_RULES[CustomRule(name)]
    except ValueError:
        return None


def is_custom_rule(name: str) -> bool:
    return get_custom_rule(name) is not None
