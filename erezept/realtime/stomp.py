"""
Minimal STOMP 1.0-1.2 frame codec for text WebSocket messages.

A frame is ``COMMAND\\n`` followed by ``name:value`` header lines, an
empty line, the body and a terminating NUL.  Browsers (stomp.js) send one
frame per WebSocket message but may pack several, and send bare EOLs as
heart-beats; both are handled by :func:`parse_frames`, which also honours
``content-length`` so a body may contain NUL.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

SUPPORTED_VERSIONS = ("1.2", "1.1", "1.0")
SUBPROTOCOLS = {"v12.stomp": "1.2", "v11.stomp": "1.1", "v10.stomp": "1.0"}

CLIENT_COMMANDS = {
    "CONNECT", "STOMP", "SEND", "SUBSCRIBE", "UNSUBSCRIBE",
    "ACK", "NACK", "BEGIN", "COMMIT", "ABORT", "DISCONNECT",
}
SERVER_COMMANDS = {"CONNECTED", "MESSAGE", "RECEIPT", "ERROR"}

# CONNECT/CONNECTED headers are never escaped (STOMP 1.2, "Value Encoding").
_UNESCAPED_COMMANDS = {"CONNECT", "CONNECTED", "STOMP"}

_DECODE = {"\\r": "\r", "\\n": "\n", "\\c": ":", "\\\\": "\\"}


class StompProtocolError(ValueError):
    """Raised for frames that cannot be parsed."""


@dataclass
class Frame:
    command: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def render(self) -> str:
        escape = self.command not in _UNESCAPED_COMMANDS
        lines = [self.command]
        headers = dict(self.headers)
        if self.body and "content-length" not in headers:
            headers["content-length"] = str(len(self.body.encode("utf-8")))
        for name, value in headers.items():
            if escape:
                name, value = _escape(name), _escape(str(value))
            lines.append(f"{name}:{value}")
        return "\n".join(lines) + "\n\n" + self.body + "\x00"


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace(":", "\\c")
    )


def _unescape(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\":
            seq = value[i:i + 2]
            if seq not in _DECODE:
                raise StompProtocolError(f"Undefined escape sequence {seq!r}")
            out.append(_DECODE[seq])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _parse_head(head: str, commands: Set[str]) -> Tuple[str, Dict[str, str]]:
    lines = head.replace("\r\n", "\n").split("\n")
    command = lines[0].strip()
    if command not in commands:
        raise StompProtocolError(f"Unknown STOMP command {command!r}")

    unescape = command not in _UNESCAPED_COMMANDS
    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            continue
        name, colon, value = line.partition(":")
        if not colon:
            raise StompProtocolError(f"Malformed header line {line!r}")
        if unescape:
            name, value = _unescape(name), _unescape(value)
        # Repeated headers: the first occurrence wins.
        headers.setdefault(name, value)
    return command, headers


def _content_length(headers: Dict[str, str]) -> Optional[int]:
    length = headers.get("content-length")
    if length is None:
        return None
    try:
        n = int(length)
    except ValueError:
        raise StompProtocolError(f"Invalid content-length {length!r}")
    if n < 0:
        raise StompProtocolError(f"Invalid content-length {length!r}")
    return n


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise StompProtocolError("Frame is not valid UTF-8")


def parse_frame(raw: str, commands: Optional[Set[str]] = None) -> Frame:
    """Parse one frame (without its trailing NUL).

    Only client commands are accepted unless another command set is given.
    """
    commands = commands or CLIENT_COMMANDS
    raw = raw.lstrip("\r\n")
    head, sep, body = raw.partition("\n\n")
    if not sep:
        head, sep, body = raw.partition("\r\n\r\n")
    command, headers = _parse_head(head, commands)

    n = _content_length(headers)
    if n is not None:
        encoded = body.encode("utf-8")
        if n > len(encoded):
            raise StompProtocolError("Frame body shorter than content-length")
        body = _decode(encoded[:n])
    return Frame(command=command, headers=headers, body=body)


def _split_head(raw: bytes, start: int) -> Tuple[bytes, int]:
    """Return the command and header lines starting at ``start`` and the body offset."""
    cursor = start
    while True:
        eol = raw.find(b"\n", cursor)
        if eol < 0:
            raise StompProtocolError("Frame headers are not terminated by an empty line")
        if cursor != start and not raw[cursor:eol].rstrip(b"\r"):
            return raw[start:cursor], eol + 1
        cursor = eol + 1


def parse_frames(data: str, commands: Optional[Set[str]] = None) -> List[Frame]:
    """Split a WebSocket text message into frames, skipping heart-beats.

    A frame with ``content-length`` takes exactly that many bytes as its
    body, so the body may itself contain NUL; without it the body ends at
    the first NUL.
    """
    commands = commands or CLIENT_COMMANDS
    raw = data.encode("utf-8")
    frames = []
    pos = 0
    while pos < len(raw):
        if raw[pos] in b"\r\n\x00":
            pos += 1
            continue
        head, body_start = _split_head(raw, pos)
        command, headers = _parse_head(_decode(head), commands)

        n = _content_length(headers)
        if n is not None:
            body_end = body_start + n
            if body_end > len(raw):
                raise StompProtocolError("Frame body shorter than content-length")
            if body_end < len(raw) and raw[body_end] != 0:
                raise StompProtocolError("Frame body is not terminated by NUL")
        else:
            body_end = raw.find(b"\x00", body_start)
            if body_end < 0:
                body_end = len(raw)
        frames.append(Frame(command=command, headers=headers, body=_decode(raw[body_start:body_end])))
        pos = body_end + 1
    return frames


def negotiate_version(accept_version: Optional[str]) -> str:
    """Pick the highest version both sides speak; absent header means 1.0."""
    if not accept_version:
        return "1.0"
    offered = {v.strip() for v in accept_version.split(",")}
    for version in SUPPORTED_VERSIONS:
        if version in offered:
            return version
    raise StompProtocolError(f"Supported protocol versions are {','.join(SUPPORTED_VERSIONS)}")


def select_subprotocol(requested: List[str]) -> Optional[str]:
    for name in requested or ():
        if name in SUBPROTOCOLS:
            return name
    return None
