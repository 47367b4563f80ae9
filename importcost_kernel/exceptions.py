"""
Typed Exception Hierarchy for the Import Cost Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the CRUD/API layer) must be able to tell a missing container from a
transfer that another confirmation already consumed without parsing message
strings. Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        sale_service.confirm_sale(preview, transfer_ids)
    except TransferAlreadyLinkedError as e:
        api_response(code=e.code, transfers=e.transfer_ids)  # re-fetch, retry

Contract violations inside the pure engines (quantity <= 0, non-finite input,
percentages outside [0, 100]) are programming errors and raise ValueError.
Zero denominators in pricing are NOT errors; they yield zero.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ImportCostError (base)
    |
    +-- NotFoundError
    |   +-- ContainerNotFoundError
    |   +-- ProductNotFoundError
    |   +-- LotNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- TransferNotFoundError
    |   +-- SaleNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidChannelSplitError
    |   +-- InsufficientStockError
    |   +-- TransferInUseError
    |   +-- ContainerInUseError
    |
    +-- CurrencyError
    |   +-- ExchangeRateNotFoundError
    |
    +-- ConcurrencyError
        +-- TransferAlreadyLinkedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | CONTAINER_NOT_FOUND         | Container ID doesn't exist
                | PRODUCT_NOT_FOUND           | Product ID doesn't exist
                | LOT_NOT_FOUND               | Lot ID doesn't exist
                | EXPENSE_NOT_FOUND           | Expense ID doesn't exist
                | TRANSFER_NOT_FOUND          | One or more transfer IDs don't exist
                | SALE_NOT_FOUND              | Sale ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_CHANNEL_SPLIT       | Channel %s don't sum to 100 (+-0.01)
                | INSUFFICIENT_STOCK          | Movement would drive stock negative
                | TRANSFER_IN_USE             | Deleting a transfer linked to a sale
                | CONTAINER_IN_USE            | Deleting a container whose lots were sold
----------------|-----------------------------|-----------------------------------------
Currency        | EXCHANGE_RATE_NOT_FOUND     | No container or default rate for code
----------------|-----------------------------|-----------------------------------------
Concurrency     | TRANSFER_ALREADY_LINKED     | Transfer consumed by another sale
===============================================================================
"""


class ImportCostError(Exception):
    """
    Base exception for all import cost errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "IMPORT_COST_ERROR"


# Lookup failures


class NotFoundError(ImportCostError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ContainerNotFoundError(NotFoundError):
    """Container with given ID was not found."""

    code: str = "CONTAINER_NOT_FOUND"

    def __init__(self, container_id: str):
        self.container_id = container_id
        super().__init__(f"Container not found: {container_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class LotNotFoundError(NotFoundError):
    """Lot with given ID was not found."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Lot not found: {lot_id}")


class ExpenseNotFoundError(NotFoundError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class TransferNotFoundError(NotFoundError):
    """One or more transfers were not found."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_ids: list[str]):
        self.transfer_ids = transfer_ids
        super().__init__(f"Transfers not found: {', '.join(transfer_ids)}")


class SaleNotFoundError(NotFoundError):
    """Sale with given ID was not found."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(f"Sale not found: {sale_id}")


# Validation failures on the public mutation paths


class ValidationError(ImportCostError):
    """Base exception for rejected mutations."""

    code: str = "VALIDATION_ERROR"


class InvalidChannelSplitError(ValidationError):
    """Sale-channel percentages do not sum to 100."""

    code: str = "INVALID_CHANNEL_SPLIT"

    def __init__(self, hard_currency: str, fiscal: str, cash: str, total: str):
        self.hard_currency = hard_currency
        self.fiscal = fiscal
        self.cash = cash
        self.total = total
        super().__init__(
            f"Channel split must sum to 100, got {total} "
            f"(hard={hard_currency}, fiscal={fiscal}, cash={cash})"
        )


class InsufficientStockError(ValidationError):
    """A decreasing movement exceeds the product's current quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"available {available}, requested {requested}"
        )


class TransferInUseError(ValidationError):
    """A transfer linked to a sale cannot be deleted."""

    code: str = "TRANSFER_IN_USE"

    def __init__(self, transfer_id: str, sale_id: str):
        self.transfer_id = transfer_id
        self.sale_id = sale_id
        super().__init__(f"Transfer {transfer_id} is linked to sale {sale_id}")


class ContainerInUseError(ValidationError):
    """Confirmed sale lines draw on the container's lots."""

    code: str = "CONTAINER_IN_USE"

    def __init__(self, container_id: str, lot_ids: list[str]):
        self.container_id = container_id
        self.lot_ids = lot_ids
        super().__init__(
            f"Container {container_id} has lots referenced by sales: {', '.join(lot_ids)}"
        )


# Currency-related exceptions


class CurrencyError(ImportCostError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class ExchangeRateNotFoundError(CurrencyError):
    """No container override and no default rate for a currency."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, currency: str, container_id: str | None = None):
        self.currency = currency
        self.container_id = container_id
        scope = f" in container {container_id}" if container_id else ""
        super().__init__(f"No exchange rate found for {currency}{scope}")


# Concurrency-related exceptions


class ConcurrencyError(ImportCostError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class TransferAlreadyLinkedError(ConcurrencyError):
    """A transfer was consumed by another sale before this one committed."""

    code: str = "TRANSFER_ALREADY_LINKED"

    def __init__(self, transfer_ids: list[str]):
        self.transfer_ids = transfer_ids
        super().__init__(
            f"Transfers already linked to a sale: {', '.join(transfer_ids)}"
        )
