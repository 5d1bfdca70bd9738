"""
Engine configuration schema (``linen_config.schema``).

Every rate and ceiling the reconciliation engine uses lives here, in one
frozen dataclass that is passed explicitly into each engine call.  Field
defaults are the operating values of the business; override them per
deployment through YAML (see ``linen_config.loader``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Self

from linen_kernel.logging_config import get_logger

logger = get_logger("config.schema")

_DECIMAL_FIELDS = (
    "vat_rate",
    "express_surcharge_rate",
    "max_unit_price",
    "max_category_price",
    "minor_discrepancy_threshold_percent",
    "large_discrepancy_warning_percent",
)

_INT_FIELDS = (
    "max_quantity",
    "max_discrepancy_details_length",
    "paper_id_min_year",
    "paper_id_max_year",
    "max_paper_sequence",
    "max_paper_batch_id_length",
    "max_notes_length",
)


def _decimal_field(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a decimal number, got {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class EngineConfig:
    """
    Rates and limits for batch reconciliation.

        config = EngineConfig(vat_rate=Decimal("0.15"))
        config = EngineConfig.from_dict(load_yaml_file(path))
    """

    # Rates
    vat_rate: Decimal = Decimal("0.15")
    express_surcharge_rate: Decimal = Decimal("0.5")

    # Item entry limits
    max_quantity: int = 10_000
    max_unit_price: Decimal = Decimal("1000")  # operator-facing ceiling for batch items
    max_category_price: Decimal = Decimal("10000")  # category maintenance ceiling
    max_discrepancy_details_length: int = 500

    # Discrepancy classification
    minor_discrepancy_threshold_percent: Decimal = Decimal("5")
    large_discrepancy_warning_percent: Decimal = Decimal("50")

    # Paper batch ids
    paper_id_min_year: int = 2020
    paper_id_max_year: int = 2030
    max_paper_sequence: int = 999
    max_paper_batch_id_length: int = 50

    # Batch record
    max_notes_length: int = 1000

    def __post_init__(self) -> None:
        for name in _DECIMAL_FIELDS:
            object.__setattr__(self, name, _decimal_field(name, getattr(self, name)))
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be a whole number, got {value!r}")

        if not Decimal("0") <= self.vat_rate <= Decimal("1"):
            raise ValueError(f"vat_rate must be between 0 and 1, got {self.vat_rate}")
        if self.express_surcharge_rate < 0:
            raise ValueError("express_surcharge_rate cannot be negative")
        if self.max_quantity <= 0:
            raise ValueError("max_quantity must be positive")
        if self.max_unit_price <= 0:
            raise ValueError("max_unit_price must be positive")
        if self.max_category_price < self.max_unit_price:
            raise ValueError(
                f"max_category_price ({self.max_category_price}) cannot be below "
                f"max_unit_price ({self.max_unit_price})"
            )
        if self.minor_discrepancy_threshold_percent < 0:
            raise ValueError("minor_discrepancy_threshold_percent cannot be negative")
        if self.large_discrepancy_warning_percent < 0:
            raise ValueError("large_discrepancy_warning_percent cannot be negative")
        if self.paper_id_min_year > self.paper_id_max_year:
            raise ValueError("paper_id_min_year cannot exceed paper_id_max_year")
        if not 1 <= self.max_paper_sequence <= 999:
            raise ValueError("max_paper_sequence must fit three digits (1..999)")

        logger.debug(
            "engine_config_initialized",
            extra={
                "vat_rate": str(self.vat_rate),
                "express_surcharge_rate": str(self.express_surcharge_rate),
                "max_quantity": self.max_quantity,
                "max_unit_price": str(self.max_unit_price),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the business's standard values."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g. parsed YAML).

        Raises:
            ValueError: unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {unknown}")
        logger.info(
            "engine_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return {
            k: str(v) if isinstance(v, Decimal) else v
            for k, v in asdict(self).items()
        }
