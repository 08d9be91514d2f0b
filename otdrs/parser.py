"""Reading whole SOR files: the map block, block extraction and full parsing."""

from __future__ import annotations

import struct

from otdrs.blocks import (
    BLOCK_ID_CHECKSUM,
    BLOCK_ID_DATAPTS,
    BLOCK_ID_FXDPARAMS,
    BLOCK_ID_GENPARAMS,
    BLOCK_ID_KEYEVENTS,
    BLOCK_ID_LNKPARAMS,
    BLOCK_ID_MAP,
    BLOCK_ID_SUPPARAMS,
    ParseError,
    data_points_block,
    fixed_parameters_block,
    general_parameters_block,
    key_events_block,
    proprietary_block,
    supplier_parameters_block,
)
from otdrs.types import BlockInfo, MapBlock, SORFile

_MISSING_BLOCK = b"\0"


def _unpack(fmt: str, data: bytes, pos: int) -> tuple[tuple[int, ...], int]:
    size = struct.calcsize(fmt)
    if pos + size > len(data):
        raise ParseError(f"unexpected end of data at offset {pos}: needed {size} bytes")
    return struct.unpack_from(fmt, data, pos), pos + size


def _cstr(data: bytes, pos: int) -> tuple[str, int]:
    end = data.find(b"\0", pos)
    if end < 0:
        raise ParseError(f"unterminated string at offset {pos}")
    try:
        text = data[pos:end].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"invalid UTF-8 in block identifier: {exc}") from exc
    return text, end + 1


def map_block(data: bytes) -> MapBlock:
    """Decode the map block that opens every SOR file.

    Raises ParseError if the header is missing, the block count is not at
    least one (the map itself), or the data ends early.
    """
    data = bytes(data)
    prefix = BLOCK_ID_MAP.encode("ascii") + b"\0"
    if not data.startswith(prefix):
        raise ParseError(f"expected block header {BLOCK_ID_MAP!r} at offset 0")
    (revision_number, block_size, block_count), pos = _unpack("<Hih", data, len(prefix))
    if block_count < 1:
        raise ParseError(f"invalid block count {block_count} in map block")

    block_info = []
    for _ in range(block_count - 1):
        identifier, pos = _cstr(data, pos)
        (revision, size), pos = _unpack("<Hi", data, pos)
        block_info.append(BlockInfo(identifier=identifier, revision_number=revision, size=size))

    return MapBlock(
        revision_number=revision_number,
        block_size=block_size,
        block_count=block_count,
        block_info=block_info,
    )


def extract_block_data(data: bytes, header: str) -> bytes:
    """Return the bytes of the block named by header, located via the map.

    Blocks are laid out after the map in map order. Raises ParseError when
    the map describes a position or length that does not fit the data.
    """
    data = bytes(data)
    layout = map_block(data)
    offset = layout.block_size
    length = 0
    for info in layout.block_info:
        length = info.size
        if info.identifier == header:
            break
        if info.size < 0:
            raise ParseError("error with block data - offset value is incorrect")
        offset += info.size
    if length < 0:
        raise ParseError("error with block data - final byte value is incorrect")
    if offset < 0 or offset > len(data):
        raise ParseError("error with block data - reported block position is incorrect")
    end = offset + length
    if end > len(data):
        raise ParseError(
            "error with block data - reported block position or length is incorrect"
        )
    return data[offset:end]


def parse_file(data: bytes) -> SORFile:
    """Parse a complete SOR file into a SORFile.

    Known blocks are decoded, link parameters and the checksum are skipped,
    and every other block is kept as a proprietary block. A block whose
    position cannot be resolved is decoded from a single null byte.
    """
    data = bytes(data)
    layout = map_block(data)
    sor = SORFile(map=layout)

    for info in layout.block_info:
        try:
            block = extract_block_data(data, info.identifier)
        except ParseError:
            block = _MISSING_BLOCK

        identifier = info.identifier
        if identifier == BLOCK_ID_SUPPARAMS:
            sor.supplier_parameters = supplier_parameters_block(block)
        elif identifier == BLOCK_ID_GENPARAMS:
            sor.general_parameters = general_parameters_block(block)
        elif identifier == BLOCK_ID_FXDPARAMS:
            sor.fixed_parameters = fixed_parameters_block(block)
        elif identifier == BLOCK_ID_KEYEVENTS:
            sor.key_events = key_events_block(block)
        elif identifier == BLOCK_ID_DATAPTS:
            sor.data_points = data_points_block(block)
        elif identifier in (BLOCK_ID_LNKPARAMS, BLOCK_ID_CHECKSUM):
            continue
        else:
            sor.proprietary_blocks.append(proprietary_block(block))

    return sor