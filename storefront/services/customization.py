"""
Customization Resolver

Resolves the choices a customer picked in the "Customize" dialog into a
price delta and a normalized selection snapshot that can be stored on a
cart line item.

Selections are passed as a mapping of group id to either a single choice id
(single-select groups) or an iterable of choice ids (multi-select groups).

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from storefront.models import (
    CustomizationGroup,
    CustomizationKind,
    MissingRequiredSelection,
    SelectedChoice,
    ValidationError,
    ZERO,
)

logger = logging.getLogger(__name__)

SelectionValue = Union[str, Iterable[str], None]
Selections = Mapping[str, SelectionValue]


@dataclass(frozen=True)
class CustomizationResult:
    """
    Outcome of resolving a dish's customization.

    Attributes:
        success: Whether the selection is complete and valid
        delta: Sum of price deltas of every selected choice
        selections: Normalized snapshot (group order, then choice order)
        error: First validation failure, if any
    """
    success: bool
    delta: Decimal = ZERO
    selections: tuple[SelectedChoice, ...] = ()
    error: Optional[ValidationError] = None


def _as_choice_ids(value: SelectionValue) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [choice_id for choice_id in value if choice_id]


class CustomizationResolver:
    """
    Validates customization selections against a dish's groups.

    Example:
        >>> result = resolver.resolve(dish.customization_groups, {"c1": "c1o2"})
        >>> if not result.success:
        ...     print(result.error.message)
    """

    def resolve(
        self,
        groups: Iterable[CustomizationGroup],
        selections: Optional[Selections] = None,
    ) -> CustomizationResult:
        groups = tuple(groups)
        selections = dict(selections or {})

        known_groups = {group.group_id for group in groups}
        for group_id in selections:
            if group_id not in known_groups:
                return self._fail(ValidationError(
                    field=group_id,
                    message=f"Unknown customization group '{group_id}'.",
                    code="unknown_group",
                ))

        resolved: list[SelectedChoice] = []
        delta = ZERO

        for group in groups:
            chosen = set(_as_choice_ids(selections.get(group.group_id)))

            unknown = sorted(c for c in chosen if group.get_choice(c) is None)
            if unknown:
                return self._fail(ValidationError(
                    field=group.group_id,
                    message=f"'{unknown[0]}' is not a choice of {group.title}.",
                    code="unknown_choice",
                ))

            if group.kind == CustomizationKind.SINGLE_SELECT:
                if len(chosen) > 1:
                    return self._fail(ValidationError(
                        field=group.group_id,
                        message=f"Choose only one option for {group.title}.",
                        code="too_many_selections",
                    ))
                if group.required and not chosen:
                    return self._fail(MissingRequiredSelection(
                        field=group.group_id,
                        message=f"Please choose an option for {group.title}.",
                    ))

            # Choice order follows the menu, not the order the customer clicked.
            for choice in group.choices:
                if choice.choice_id in chosen:
                    resolved.append(SelectedChoice(
                        group_id=group.group_id,
                        choice_id=choice.choice_id,
                        label=choice.label,
                        price_delta=choice.price_delta,
                    ))
                    delta += choice.price_delta

        return CustomizationResult(success=True, delta=delta, selections=tuple(resolved))

    def _fail(self, error: ValidationError) -> CustomizationResult:
        logger.debug(f"Customization rejected: {error.code} ({error.field})")
        return CustomizationResult(success=False, error=error)
