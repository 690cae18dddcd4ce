"""Decoding and splitting of delimited text uploads."""
from __future__ import annotations

import codecs
import logging
from typing import Iterator, List

LOGGER = logging.getLogger(__name__)

_REPLACEMENT_CHAR = "\ufffd"


def decode_text(
    data: bytes,
    *,
    invalid_char_threshold: int = 50,
    invalid_char_ratio: float = 0.05,
    legacy_encoding: str = "cp1252",
) -> str:
    """Decode an uploaded text file, honouring byte-order marks.

    Without a BOM the payload is read as UTF-8. When the number of invalid
    sequences exceeds both ``invalid_char_threshold`` and
    ``invalid_char_ratio`` of the decoded length, the bytes are re-read with
    ``legacy_encoding``.
    """

    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")
    if data.startswith(codecs.BOM_UTF16_LE):
        return data[len(codecs.BOM_UTF16_LE):].decode("utf-16-le", errors="replace")

    text = data.decode("utf-8", errors="replace")
    invalid = text.count(_REPLACEMENT_CHAR)
    if invalid > invalid_char_threshold and invalid > len(text) * invalid_char_ratio:
        LOGGER.info(
            "Found %s invalid UTF-8 sequences in %s characters; decoding as %s",
            invalid,
            len(text),
            legacy_encoding,
        )
        return data.decode(legacy_encoding, errors="replace")
    return text


def iter_records(text: str) -> Iterator[str]:
    """Yield logical CSV records, joining lines inside quoted fields.

    A record continues onto the next physical line while the number of ``"``
    characters accumulated so far is odd.
    """

    normalised = text.replace("\r\n", "\n").replace("\r", "\n")
    buffer: List[str] = []
    quotes = 0
    for line in normalised.split("\n"):
        buffer.append(line)
        quotes += line.count('"')
        if quotes % 2:
            continue
        yield "\n".join(buffer)
        buffer = []
        quotes = 0
    if buffer:
        LOGGER.debug("Unterminated quoted field at end of input")
        yield "\n".join(buffer)


def split_fields(record: str, delimiter: str = ",") -> List[str]:
    """Split one record into trimmed field values.

    Double quotes toggle quoting and ``""`` inside a quoted field is a literal
    quote character.
    """

    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    index = 0
    length = len(record)
    while index < length:
        char = record[index]
        if char == '"':
            if in_quotes and index + 1 < length and record[index + 1] == '"':
                current.append('"')
                index += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    values.append("".join(current).strip())
    return values


def parse_delimited(text: str, delimiter: str = ",") -> List[List[str]]:
    """Parse decoded text into rows, dropping physically blank records."""

    rows: List[List[str]] = []
    for record in iter_records(text):
        if not record.strip():
            continue
        rows.append(split_fields(record, delimiter))
    return rows


__all__ = ["decode_text", "iter_records", "parse_delimited", "split_fields"]
