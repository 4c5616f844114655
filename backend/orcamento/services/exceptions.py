"""
Costing exceptions and warnings.

Validation errors block aggregation of the owning composition; degenerate
input (empty compositions, zero-cost budgets) only warns and yields zeros.
"""


class CostingValidationError(ValueError):
    """Raised when a line item or composition is malformed. Never coerced."""

    def __init__(self, field: str, message: str, item_id: str = ""):
        self.field = field
        self.message = message
        self.item_id = item_id
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict:
        detail = {"field": self.field, "message": self.message}
        if self.item_id:
            detail["item_id"] = self.item_id
        return detail


class BudgetNotFoundError(LookupError):
    """Raised when a budget, composition or item cannot be found."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class DegenerateInputWarning(UserWarning):
    """Zero-item composition or zero-cost budget; computation proceeds with zeros."""
