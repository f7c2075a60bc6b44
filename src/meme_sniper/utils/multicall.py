"""Batched contract calls through the on-chain multicall aggregator.

A :class:`MulticallRequest` is the single source of truth for a batch: it
knows the order of the calls, builds the aggregator calldata from them and
decodes the flat response using the result width each call declares.

Wire format::

    calldata = [call_count, (target, selector, arg_count, *args) ...]
    response = [block_number, word_count, *words]

The response carries no per-call lengths, so decoding only works against
the same request object that produced the calldata.

This flat layout is the one this module reads, and it is not what the
deployed Starknet aggregator returns. That contract answers
``[block_number, call_count, (result_len, *result) ...]``, putting a
length in front of every call's result. Pointing the client at it needs a
decoder that checks and strips those prefixes first.
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import DecodeError
from .field_codec import decode_short_string, decode_u256, get_selector_from_name, normalize_address, to_felt

logger = logging.getLogger(__name__)

AGGREGATE_ENTRY_POINT = "aggregate"
RESPONSE_HEADER_WIDTH = 2


class FieldKind(Enum):
    """How many result words a call produces and how to read them."""

    SCALAR = "scalar"
    U256 = "u256"
    STRUCT = "struct"


@dataclass(frozen=True, slots=True)
class ResultSpec:
    kind: FieldKind
    width: int = 1

    def __post_init__(self) -> None:
        expected = {FieldKind.SCALAR: 1, FieldKind.U256: 2}.get(self.kind)
        if expected is not None and self.width != expected:
            raise ValueError(f"{self.kind.value} results are {expected} word(s), got {self.width}")
        if self.width <= 0:
            raise ValueError(f"Result width must be positive, got {self.width}")


SCALAR = ResultSpec(FieldKind.SCALAR, 1)
U256 = ResultSpec(FieldKind.U256, 2)


def struct(width: int) -> ResultSpec:
    """Fixed-width struct result of ``width`` words."""
    return ResultSpec(FieldKind.STRUCT, width)


@dataclass(frozen=True, slots=True)
class CallDescriptor:
    """One contract call inside a batch.

    Attributes:
        name: Key under which the decoded result is returned
        target: Contract address as a field element
        entry_point: Function name, hashed into the selector
        args: Calldata for the call
        result: Width and shape of the call's result
    """

    name: str
    target: int
    entry_point: str
    args: tuple[int, ...] = ()
    result: ResultSpec = SCALAR

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", to_felt(self.target))
        object.__setattr__(self, "args", tuple(to_felt(arg) for arg in self.args))

    @property
    def selector(self) -> int:
        return get_selector_from_name(self.entry_point)

    def encode(self) -> list[int]:
        return [self.target, self.selector, len(self.args), *self.args]


class ResultCursor:
    """Forward-only reader over a flat response buffer.

    Reading past the end raises :class:`DecodeError` with the index that was
    requested instead of an ``IndexError``.
    """

    def __init__(self, words: Sequence[int], offset: int = 0) -> None:
        self._words = list(words)
        self._position = offset

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self._words) - self._position

    def read(self, count: int = 1) -> list[int]:
        end = self._position + count
        if count < 0:
            raise ValueError(f"Cannot read a negative number of words: {count}")
        if end > len(self._words):
            raise DecodeError(
                f"Result buffer too short: need {count} word(s), {self.remaining} left",
                index=len(self._words),
            )
        chunk = self._words[self._position:end]
        self._position = end
        return chunk

    def read_one(self) -> int:
        return self.read(1)[0]


@dataclass(frozen=True, slots=True)
class MulticallResponse:
    """Decoded aggregator response keyed by call name."""

    block_number: int
    values: dict[str, list[int]] = field(default_factory=dict)

    def __getitem__(self, name: str) -> list[int]:
        return self.values[name]

    def scalar(self, name: str) -> int:
        return self.values[name][0]

    def u256(self, name: str) -> str:
        low, high = self.values[name]
        return decode_u256(low, high)

    def short_string(self, name: str) -> str:
        return decode_short_string(self.scalar(name))

    def address(self, name: str) -> str:
        return normalize_address(self.scalar(name))


@dataclass(frozen=True, slots=True)
class MulticallRequest:
    """Ordered batch of calls sent to the aggregator's ``aggregate`` entry point."""

    calls: tuple[CallDescriptor, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", tuple(self.calls))
        names = [call.name for call in self.calls]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Duplicate call names in multicall: {sorted(duplicates)}")

    def __iter__(self) -> Iterator[CallDescriptor]:
        return iter(self.calls)

    def __len__(self) -> int:
        return len(self.calls)

    @property
    def result_width(self) -> int:
        """Number of result words the batch produces, header excluded."""
        return sum(call.result.width for call in self.calls)

    def encode(self) -> list[int]:
        calldata = [len(self.calls)]
        for call in self.calls:
            calldata.extend(call.encode())
        return calldata

    def decode(self, words: Sequence[int]) -> MulticallResponse:
        """Split a raw aggregator response into per-call result words.

        Raises:
            DecodeError: If the buffer is shorter than the schema or the
                header's word count disagrees with it
        """
        cursor = ResultCursor(words)
        block_number, word_count = cursor.read(RESPONSE_HEADER_WIDTH)
        if word_count != self.result_width:
            raise DecodeError(
                f"Multicall header reports {word_count} word(s), "
                f"schema expects {self.result_width}",
                index=1,
            )

        values: dict[str, list[int]] = {}
        for call in self.calls:
            values[call.name] = cursor.read(call.result.width)

        if cursor.remaining:
            raise DecodeError(
                f"{cursor.remaining} unread word(s) after decoding multicall",
                index=cursor.position,
            )

        logger.debug(f"Decoded {len(self.calls)} call results at block {block_number}")
        return MulticallResponse(block_number=block_number, values=values)

    def build_response(self, block_number: int, results: dict[str, Sequence[int]]) -> list[int]:
        """Lay out a response buffer in this request's order.

        Mirrors what the aggregator contract returns and is mostly useful
        when replaying recorded results.
        """
        words: list[int] = []
        for call in self.calls:
            chunk = list(results[call.name])
            if len(chunk) != call.result.width:
                raise ValueError(
                    f"Result for {call.name} has {len(chunk)} word(s), expected {call.result.width}"
                )
            words.extend(chunk)
        return [block_number, len(words), *words]

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": [
                {
                    "name": call.name,
                    "target": normalize_address(call.target),
                    "entry_point": call.entry_point,
                    "args": [hex(arg) for arg in call.args],
                    "result_width": call.result.width,
                }
                for call in self.calls
            ]
        }
