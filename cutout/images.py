import base64
import re
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import unquote_to_bytes

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]+)?(?P<b64>;base64)?,(?P<payload>.*)$", re.DOTALL)


class RawFile(Protocol):
    """File-like object accepted by the upload pipeline.

    Starlette's ``UploadFile`` satisfies this protocol, as does
    :class:`InMemoryFile`.
    """

    filename: Optional[str]
    content_type: Optional[str]
    size: Optional[int]

    async def read(self) -> bytes:
        ...


@dataclass(frozen=True)
class InMemoryFile:
    """An immutable raw file whose bytes are already in memory."""

    data: bytes
    content_type: Optional[str]
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    async def read(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class ImageRepresentation:
    """Self-contained encoded image: MIME type plus payload bytes."""

    mime_type: str
    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None

    def to_data_uri(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "ImageRepresentation":
        match = _DATA_URI_RE.match(uri)
        if not match:
            raise ValueError("Not a data URI")
        mime_type = match.group("mime") or "application/octet-stream"
        payload = match.group("payload")
        if match.group("b64"):
            try:
                data = base64.b64decode(payload, validate=True)
            except ValueError as e:
                raise ValueError(f"Invalid base64 payload: {e}") from e
        else:
            data = unquote_to_bytes(payload)
        return cls(mime_type=mime_type, data=data)

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/", 1)[-1].split("+", 1)[0]
        return "jpg" if subtype == "jpeg" else subtype
