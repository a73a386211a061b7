from dataclasses import dataclass
from typing import List

PROBLEM_BASE = "https://mfgops.example.com/problems"


@dataclass
class DomainError(Exception):
    detail: str
    title: str = "Domain Error"
    type: str = f"{PROBLEM_BASE}/domain-error"
    kind: str = "domain_error"
    status_code: int = 400
    errors: List[dict] | None = None

    def __str__(self) -> str:
        return self.detail


@dataclass
class NotFoundError(DomainError):
    title: str = "Not Found"
    type: str = f"{PROBLEM_BASE}/not-found"
    kind: str = "not_found"
    status_code: int = 404


@dataclass
class InvalidArgumentError(DomainError):
    title: str = "Invalid Argument"
    type: str = f"{PROBLEM_BASE}/invalid-argument"
    kind: str = "invalid_argument"
    status_code: int = 400


@dataclass
class InsufficientStockError(DomainError):
    title: str = "Insufficient Stock"
    type: str = f"{PROBLEM_BASE}/insufficient-stock"
    kind: str = "insufficient_stock"
    status_code: int = 400


@dataclass
class StorageError(DomainError):
    title: str = "Storage Error"
    type: str = f"{PROBLEM_BASE}/storage-error"
    kind: str = "storage_error"
    status_code: int = 500
