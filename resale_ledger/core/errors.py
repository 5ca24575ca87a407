from __future__ import annotations


class LedgerError(Exception):
    pass


class MissingRateError(LedgerError, LookupError):
    def __init__(self, currency: str, payment_method: str, as_of: str | None = None):
        self.currency = currency
        self.payment_method = payment_method
        self.as_of = as_of
        when = f" on {as_of}" if as_of else ""
        super().__init__(f"no exchange rate for {currency}/{payment_method}{when}")


class InvalidInputError(LedgerError, ValueError):
    pass


class OrderValidationError(LedgerError, ValueError):
    NO_OPERATOR_SELECTED = "no_operator_selected"
    NO_CUSTOMER_NAME = "no_customer_name"

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class DocumentNotFoundError(LedgerError, KeyError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")

    def __str__(self) -> str:
        return f"{self.collection}/{self.doc_id} not found"


class PersistenceError(LedgerError):
    pass
