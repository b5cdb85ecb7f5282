"""Content type sniffing and Content-Disposition formatting for downloads."""

import mimetypes

SNIFF_LEN = 512

_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# (prefix, content type), checked in order against the raw bytes
_EXACT_SIGNATURES = (
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"OTTO", "font/otf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)

# RIFF/FORM containers carry their real type at offset 8
_CONTAINER_SIGNATURES = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"FORM", b"AIFF", "audio/aiff"),
)

_WHITESPACE = b"\t\n\x0c\r "

_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)

_TSPECIALS = frozenset('()<>@,;:\\"/[]?=')


def _is_html(data: bytes) -> bool:
    stripped = data.lstrip(_WHITESPACE)
    upper = stripped.upper()
    for tag in _HTML_TAGS:
        if upper.startswith(tag) and len(stripped) > len(tag):
            if stripped[len(tag)] in (0x20, 0x3E):  # ' ' or '>'
                return True
    return False


def _is_eot(data: bytes) -> bool:
    # 34 arbitrary header bytes, then the "LP" magic
    return len(data) >= 36 and data[34:36] == b"LP"


def _is_mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0 or data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            # skip the minor version
            continue
        if data[start:start + 3] == b"mp4":
            return True
    return False


def _looks_binary(data: bytes) -> bool:
    return any(byte in _BINARY_BYTES for byte in data)


def detect_content_type(data: bytes, filename: str | None = None) -> str:
    """Sniff a MIME type from the leading bytes of ``data``.

    Only the first 512 bytes are considered. Binary content that matches no
    known signature falls back to a guess from ``filename``, then to
    ``application/octet-stream``. Content with no binary bytes is plain text.
    """
    head = data[:SNIFF_LEN]

    if _is_html(head):
        return "text/html; charset=utf-8"
    if head.lstrip(_WHITESPACE).startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for prefix, content_type in _EXACT_SIGNATURES:
        if head.startswith(prefix):
            return content_type
    for outer, inner, content_type in _CONTAINER_SIGNATURES:
        if head.startswith(outer) and head[8:8 + len(inner)] == inner:
            return content_type
    if _is_eot(head):
        return "application/vnd.ms-fontobject"
    if _is_mp4(head):
        return "video/mp4"

    if not _looks_binary(head):
        return "text/plain; charset=utf-8"

    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return "application/octet-stream"


def _needs_encoding(value: str) -> bool:
    return any((ord(ch) < 0x20 and ch != "\t") or ord(ch) > 0x7E for ch in value)


def _is_token(value: str) -> bool:
    return bool(value) and all(
        0x20 < ord(ch) < 0x7F and ch not in _TSPECIALS for ch in value
    )


def _encode_rfc2231(value: str) -> str:
    encoded = []
    for byte in value.encode("utf-8"):
        ch = chr(byte)
        if byte < 0x80 and _is_token(ch) and ch not in "*'%":
            encoded.append(ch)
        else:
            encoded.append(f"%{byte:02X}")
    return "".join(encoded)


def format_content_disposition(disposition: str, filename: str) -> str:
    """Format a ``Content-Disposition`` value such as ``attachment; filename=a.txt``.

    Token filenames are written bare and other printable filenames are quoted.
    Filenames with control characters or non-ASCII text use the RFC 2231
    ``filename*`` form.
    """
    value = disposition.lower()
    if _needs_encoding(filename):
        return f"{value}; filename*=utf-8''{_encode_rfc2231(filename)}"
    if _is_token(filename):
        return f"{value}; filename={filename}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'{value}; filename="{escaped}"'
