from decimal import Decimal

from storefront.models import MissingRequiredSelection
from storefront.services.customization import CustomizationResolver


def test_complete_selection_sums_deltas(steak):
    result = CustomizationResolver().resolve(
        steak.customization_groups,
        {"c1": "c1o2", "c2": "c2o3", "c3": ["c3o2", "c3o1"]},
    )

    assert result.success
    assert result.delta == Decimal("5.50")
    # Menu order, not click order.
    assert [s.choice_id for s in result.selections] == ["c1o2", "c2o3", "c3o1", "c3o2"]


def test_missing_required_group(steak):
    result = CustomizationResolver().resolve(steak.customization_groups, {"c1": "c1o1"})

    assert not result.success
    assert isinstance(result.error, MissingRequiredSelection)
    assert result.error.group_id == "c2"
    assert result.error.code == "missing_required_selection"
    assert result.error.message == "Please choose an option for Sauce Choice."


def test_first_missing_group_reported_first(steak):
    result = CustomizationResolver().resolve(steak.customization_groups, {})
    assert result.error.group_id == "c1"


def test_optional_groups_may_be_empty(risotto):
    result = CustomizationResolver().resolve(risotto.customization_groups, None)
    assert result.success
    assert result.delta == Decimal("0.00")
    assert result.selections == ()


def test_unknown_choice(risotto):
    result = CustomizationResolver().resolve(risotto.customization_groups, {"c4": "c9o9"})
    assert not result.success
    assert result.error.code == "unknown_choice"


def test_unknown_group(risotto):
    result = CustomizationResolver().resolve(risotto.customization_groups, {"zz": "c4o2"})
    assert result.error.code == "unknown_group"
    assert result.error.field == "zz"


def test_single_select_rejects_two_choices(risotto):
    result = CustomizationResolver().resolve(
        risotto.customization_groups, {"c4": ["c4o2", "c4o3"]}
    )
    assert result.error.code == "too_many_selections"


def test_dish_without_groups_accepts_nothing():
    result = CustomizationResolver().resolve((), {})
    assert result.success
    assert result.delta == Decimal("0.00")


def test_empty_multi_select_adds_nothing(steak):
    required_only = {"c1": "c1o2", "c2": "c2o3"}
    resolver = CustomizationResolver()

    omitted = resolver.resolve(steak.customization_groups, required_only)
    empty = resolver.resolve(steak.customization_groups, {**required_only, "c3": []})

    assert omitted.success and empty.success
    # Only the Bearnaise sauce carries a surcharge.
    assert omitted.delta == empty.delta == Decimal("2.00")
    assert [s.group_id for s in empty.selections] == ["c1", "c2"]
