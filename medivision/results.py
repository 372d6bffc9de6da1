"""
Tagged results for calls to remote model providers.

Providers never return bare strings or None: a caller gets a Success with a
payload, or one of the two failure variants, and has to handle each case.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw: str = ""


@dataclass(frozen=True)
class TransportFailure:
    reason: str


@dataclass(frozen=True)
class NotFound:
    reason: str = "not found"


ProviderResult = Union[Success[T], ParseFailure, TransportFailure]
LocateResult = Union[Success[T], NotFound, ParseFailure, TransportFailure]


def is_failure(result) -> bool:
    return isinstance(result, (ParseFailure, TransportFailure))
