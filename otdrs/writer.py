"""Encoding SOR structures back into the binary Bellcore/Telcordia format."""

from __future__ import annotations

import struct
from collections.abc import Iterable

from otdrs.blocks import (
    BLOCK_ID_CHECKSUM,
    BLOCK_ID_DATAPTS,
    BLOCK_ID_FXDPARAMS,
    BLOCK_ID_GENPARAMS,
    BLOCK_ID_KEYEVENTS,
    BLOCK_ID_MAP,
    BLOCK_ID_SUPPARAMS,
)
from otdrs.types import (
    BlockInfo,
    DataPoints,
    FixedParametersBlock,
    GeneralParametersBlock,
    KeyEvent,
    KeyEvents,
    LastKeyEvent,
    MapBlock,
    ProprietaryBlock,
    SORFile,
    SupplierParametersBlock,
)

CHECKSUM_REVISION = 200
# Identifier + null terminator + u16 revision + i32 size, per map entry.
_MAP_ENTRY_OVERHEAD = 1 + 2 + 4
# "Map" + null terminator + u16 revision + i32 size + i16 count.
_MAP_HEADER_SIZE = len(BLOCK_ID_MAP) + 1 + 2 + 4 + 2


class WriteError(ValueError):
    """Raised when a SOR structure cannot be encoded."""


def _crc_entry(byte: int) -> int:
    crc = byte
    for _ in range(8):
        crc = (crc >> 1) ^ 0x8408 if crc & 1 else crc >> 1
    return crc


_CRC_TABLE = tuple(_crc_entry(n) for n in range(256))


def crc16_kermit(data: bytes) -> int:
    """Return the CRC-16/KERMIT checksum of data."""
    crc = 0
    for byte in data:
        crc = _CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc


class _Encoder:
    """Accumulates little-endian fields into a byte string."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def cstr(self, text: str) -> None:
        self._buf += text.encode("utf-8") + b"\0"

    def fixed_str(self, text: str, name: str) -> None:
        if any(ord(ch) > 0x7F for ch in text):
            raise WriteError(
                f"{name}: a character in a fixed-length string needs more than one "
                "byte to encode, which the standard does not permit"
            )
        self._buf += text.encode("ascii")

    def _pack(self, fmt: str, value: int, name: str) -> None:
        try:
            self._buf += struct.pack(fmt, value)
        except struct.error as exc:
            raise WriteError(f"{name}: {exc}") from exc

    def i16(self, value: int, name: str) -> None:
        self._pack("<h", value, name)

    def u16(self, value: int, name: str) -> None:
        self._pack("<H", value, name)

    def i32(self, value: int, name: str) -> None:
        self._pack("<i", value, name)

    def u32(self, value: int, name: str) -> None:
        self._pack("<I", value, name)

    def raw(self, data: bytes) -> None:
        self._buf += data

    def each(self, method, values: Iterable[int], name: str) -> None:
        for value in values:
            method(value, name)

    def result(self) -> bytes:
        return bytes(self._buf)


def encode_map(map_block: MapBlock) -> bytes:
    """Encode a map block.

    block_size and block_count describe only the listed blocks; the map's
    own header size and the map itself are added here.
    """
    enc = _Encoder()
    enc.cstr(BLOCK_ID_MAP)
    enc.u16(map_block.revision_number, "map.revision_number")
    enc.i32(map_block.block_size + _MAP_HEADER_SIZE, "map.block_size")
    enc.i16(map_block.block_count + 1, "map.block_count")
    for info in map_block.block_info:
        enc.cstr(info.identifier)
        enc.u16(info.revision_number, "block_info.revision_number")
        enc.i32(info.size, "block_info.size")
    return enc.result()


def encode_general_parameters(block: GeneralParametersBlock) -> bytes:
    """Encode a GenParams block."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_GENPARAMS)
    enc.fixed_str(block.language_code, "language_code")
    enc.cstr(block.cable_id)
    enc.cstr(block.fiber_id)
    enc.i16(block.fiber_type, "fiber_type")
    enc.i16(block.nominal_wavelength, "nominal_wavelength")
    enc.cstr(block.originating_location)
    enc.cstr(block.terminating_location)
    enc.cstr(block.cable_code)
    enc.fixed_str(block.current_data_flag, "current_data_flag")
    enc.i32(block.user_offset, "user_offset")
    enc.i32(block.user_offset_distance, "user_offset_distance")
    enc.cstr(block.operator)
    enc.cstr(block.comment)
    return enc.result()


def encode_supplier_parameters(block: SupplierParametersBlock) -> bytes:
    """Encode a SupParams block."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_SUPPARAMS)
    for text in (
        block.supplier_name,
        block.otdr_mainframe_id,
        block.otdr_mainframe_sn,
        block.optical_module_id,
        block.optical_module_sn,
        block.software_revision,
        block.other,
    ):
        enc.cstr(text)
    return enc.result()


def encode_fixed_parameters(block: FixedParametersBlock) -> bytes:
    """Encode a FxdParams block."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_FXDPARAMS)
    enc.u32(block.date_time_stamp, "date_time_stamp")
    enc.fixed_str(block.units_of_distance, "units_of_distance")
    enc.i16(block.actual_wavelength, "actual_wavelength")
    enc.i32(block.acquisition_offset, "acquisition_offset")
    enc.i32(block.acquisition_offset_distance, "acquisition_offset_distance")
    enc.i16(block.total_n_pulse_widths_used, "total_n_pulse_widths_used")
    enc.each(enc.i16, block.pulse_widths_used, "pulse_widths_used")
    enc.each(enc.i32, block.data_spacing, "data_spacing")
    enc.each(
        enc.i32,
        block.n_data_points_for_pulse_widths_used,
        "n_data_points_for_pulse_widths_used",
    )
    enc.i32(block.group_index, "group_index")
    enc.i16(block.backscatter_coefficient, "backscatter_coefficient")
    enc.i32(block.number_of_averages, "number_of_averages")
    enc.u16(block.averaging_time, "averaging_time")
    enc.i32(block.acquisition_range, "acquisition_range")
    enc.i32(block.acquisition_range_distance, "acquisition_range_distance")
    enc.i32(block.front_panel_offset, "front_panel_offset")
    enc.u16(block.noise_floor_level, "noise_floor_level")
    enc.i16(block.noise_floor_scale_factor, "noise_floor_scale_factor")
    enc.u16(block.power_offset_first_point, "power_offset_first_point")
    enc.u16(block.loss_threshold, "loss_threshold")
    enc.u16(block.reflectance_threshold, "reflectance_threshold")
    enc.u16(block.end_of_fibre_threshold, "end_of_fibre_threshold")
    enc.fixed_str(block.trace_type, "trace_type")
    enc.i32(block.window_coordinate_1, "window_coordinate_1")
    enc.i32(block.window_coordinate_2, "window_coordinate_2")
    enc.i32(block.window_coordinate_3, "window_coordinate_3")
    enc.i32(block.window_coordinate_4, "window_coordinate_4")
    return enc.result()


def _encode_event(enc: _Encoder, event: KeyEvent | LastKeyEvent) -> None:
    enc.i16(event.event_number, "event_number")
    enc.i32(event.event_propogation_time, "event_propogation_time")
    enc.i16(
        event.attenuation_coefficient_lead_in_fiber,
        "attenuation_coefficient_lead_in_fiber",
    )
    enc.i16(event.event_loss, "event_loss")
    enc.i32(event.event_reflectance, "event_reflectance")
    enc.fixed_str(event.event_code, "event_code")
    enc.fixed_str(event.loss_measurement_technique, "loss_measurement_technique")
    enc.i32(event.marker_location_1, "marker_location_1")
    enc.i32(event.marker_location_2, "marker_location_2")
    enc.i32(event.marker_location_3, "marker_location_3")
    enc.i32(event.marker_location_4, "marker_location_4")
    enc.i32(event.marker_location_5, "marker_location_5")
    enc.cstr(event.comment)


def encode_key_events(events: KeyEvents) -> bytes:
    """Encode a KeyEvents block, the last event with its loss figures."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_KEYEVENTS)
    enc.i16(events.number_of_key_events, "number_of_key_events")
    for event in events.key_events:
        _encode_event(enc, event)
    last = events.last_key_event
    _encode_event(enc, last)
    enc.i32(last.end_to_end_loss, "end_to_end_loss")
    enc.i32(last.end_to_end_marker_position_1, "end_to_end_marker_position_1")
    enc.i32(last.end_to_end_marker_position_2, "end_to_end_marker_position_2")
    enc.u16(last.optical_return_loss, "optical_return_loss")
    enc.i32(
        last.optical_return_loss_marker_position_1,
        "optical_return_loss_marker_position_1",
    )
    enc.i32(
        last.optical_return_loss_marker_position_2,
        "optical_return_loss_marker_position_2",
    )
    return enc.result()


def encode_data_points(points: DataPoints) -> bytes:
    """Encode a DataPts block."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_DATAPTS)
    enc.i32(points.number_of_data_points, "number_of_data_points")
    enc.i16(points.total_number_scale_factors_used, "total_number_scale_factors_used")
    for scale in points.scale_factors:
        enc.i32(scale.n_points, "n_points")
        enc.i16(scale.scale_factor, "scale_factor")
        enc.each(enc.u16, scale.data, "data")
    return enc.result()


def encode_proprietary_block(block: ProprietaryBlock) -> bytes:
    """Encode a vendor block: its header followed by the raw payload."""
    enc = _Encoder()
    enc.cstr(block.header)
    enc.raw(bytes(block.data))
    return enc.result()


def encode_checksum_block(data: bytes) -> bytes:
    """Encode the Cksum block holding the CRC-16/KERMIT of data."""
    enc = _Encoder()
    enc.cstr(BLOCK_ID_CHECKSUM)
    enc.u16(crc16_kermit(data), "checksum")
    return enc.result()


def to_bytes(sor: SORFile) -> bytes:
    """Encode a whole SOR file, rebuilding the map and appending a checksum.

    Every block written must have an entry in sor.map.block_info, whose
    revision number is carried over. Link parameters are not written.
    Raises WriteError when a block cannot be encoded or lacks a map entry.
    """
    revisions = {}
    for info in sor.map.block_info:
        revisions.setdefault(info.identifier, info.revision_number)

    new_map = MapBlock(
        revision_number=sor.map.revision_number,
        block_size=0,
        block_count=0,
        block_info=[],
    )
    body = bytearray()

    def add(identifier: str, encoded: bytes) -> None:
        if identifier not in revisions:
            raise WriteError("BlockInfo block is missing for one of your blocks in the Map!")
        new_map.block_info.append(
            BlockInfo(
                identifier=identifier,
                revision_number=revisions[identifier],
                size=len(encoded),
            )
        )
        new_map.block_count += 1
        new_map.block_size += len(identifier.encode("utf-8")) + _MAP_ENTRY_OVERHEAD
        body.extend(encoded)

    standard = (
        (BLOCK_ID_GENPARAMS, sor.general_parameters, encode_general_parameters),
        (BLOCK_ID_SUPPARAMS, sor.supplier_parameters, encode_supplier_parameters),
        (BLOCK_ID_FXDPARAMS, sor.fixed_parameters, encode_fixed_parameters),
        (BLOCK_ID_KEYEVENTS, sor.key_events, encode_key_events),
        (BLOCK_ID_DATAPTS, sor.data_points, encode_data_points),
    )
    for identifier, block, encode in standard:
        if block is not None:
            add(identifier, encode(block))

    for block in sor.proprietary_blocks:
        add(block.header, encode_proprietary_block(block))

    checksum_id_size = len(BLOCK_ID_CHECKSUM) + 1
    new_map.block_info.append(
        BlockInfo(
            identifier=BLOCK_ID_CHECKSUM,
            revision_number=CHECKSUM_REVISION,
            size=checksum_id_size + 2,
        )
    )
    new_map.block_count += 1
    new_map.block_size += len(BLOCK_ID_CHECKSUM) + _MAP_ENTRY_OVERHEAD

    content = encode_map(new_map) + bytes(body)
    return content + encode_checksum_block(content)