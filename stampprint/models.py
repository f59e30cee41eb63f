"""Work units returned by the service and the documents they produce."""

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path

from stampprint.errors import InvalidOrderError, PayloadDecodeError


def decode_payload(data) -> bytes:
    """Decode an inline command payload into bytes.

    Recognized wire shapes:
        - raw bytes (``bytes``/``bytearray``)
        - base64 text (``str``)
        - indexed byte map (``{"0": 37, "1": 80, ...}``), the JSON form of a
          serialized byte array

    Args:
        data: Payload as received.

    Returns:
        bytes: Canonical byte sequence.

    Raises:
        PayloadDecodeError: If the payload matches none of the shapes.
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)

    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as err:
            raise PayloadDecodeError(f"Invalid base64 payload: {err}") from err

    if isinstance(data, dict):
        try:
            items = sorted((int(k), v) for k, v in data.items())
        except (TypeError, ValueError) as err:
            raise PayloadDecodeError("Byte map has non-integer keys") from err
        if [i for i, _ in items] != list(range(len(items))):
            raise PayloadDecodeError("Byte map indexes are not contiguous from 0")
        try:
            return bytes(v for _, v in items)
        except (TypeError, ValueError) as err:
            raise PayloadDecodeError("Byte map values are not bytes") from err

    raise PayloadDecodeError(f"Unrecognized payload type: {type(data).__name__}")


@dataclass
class InlineCommand:
    """Binary document pushed directly in the poll response."""

    filename: str
    data: object

    @classmethod
    def from_dict(cls, data: dict) -> "InlineCommand":
        return cls(filename=data.get("filename") or "", data=data.get("data"))

    def payload(self) -> bytes:
        return decode_payload(self.data)


@dataclass
class RemoteOrder:
    """Order referencing a stored document, printed once per copy."""

    id: str
    product_id: str
    has_cover: bool = False
    copy_count: int | None = None
    serials: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RemoteOrder":
        """Build an order from the service's JSON.

        Serials arrive either as ``{"serial": "..."}`` objects or as plain
        strings.

        Raises:
            InvalidOrderError: If the id or productId is missing, or copyCount
                is not a non-negative integer. Carries the order id when known.
        """
        if not isinstance(data, dict):
            raise InvalidOrderError(f"Order is not an object: {data!r}")

        order_id = data.get("id")
        if order_id in (None, ""):
            raise InvalidOrderError("Order has no id")
        order_id = str(order_id)

        product_id = data.get("productId")
        if product_id in (None, ""):
            raise InvalidOrderError(f"Order {order_id} has no productId", order_id)

        copy_count = data.get("copyCount")
        if copy_count is not None:
            try:
                copy_count = int(copy_count)
            except (TypeError, ValueError) as err:
                raise InvalidOrderError(
                    f"Order {order_id} has invalid copyCount {copy_count!r}", order_id
                ) from err
            if copy_count < 0:
                raise InvalidOrderError(f"Order {order_id} has negative copyCount", order_id)

        serials = []
        for item in data.get("serials") or []:
            if isinstance(item, dict):
                serials.append(str(item.get("serial") or ""))
            else:
                serials.append(str(item))

        return cls(
            id=order_id,
            product_id=str(product_id),
            has_cover=bool(data.get("hasCover", False)),
            copy_count=copy_count or None,
            serials=serials,
        )

    @property
    def effective_copies(self) -> int:
        """Explicit copy count, else one per serial, else 1."""
        if self.copy_count:
            return self.copy_count
        if self.serials:
            return len(self.serials)
        return 1

    def serial_for(self, index: int) -> str:
        """Mark text for a copy (empty when there is no serial for it)."""
        if index < len(self.serials):
            return self.serials[index]
        return ""


@dataclass
class WorkUnit:
    """Result of one poll. Both fields empty means there is no work."""

    command: InlineCommand | None = None
    order: RemoteOrder | None = None

    @classmethod
    def from_response(cls, data) -> "WorkUnit":
        if not isinstance(data, dict):
            return cls()
        cmd = data.get("cmd")
        order = data.get("order")
        return cls(
            command=InlineCommand.from_dict(cmd) if cmd else None,
            order=RemoteOrder.from_dict(order) if order else None,
        )

    @property
    def is_empty(self) -> bool:
        return self.command is None and self.order is None


@dataclass
class FetchedDocument:
    """Validated PDF downloaded to scratch storage."""

    path: Path
    filename: str
