"""Decoders for the individual blocks of a SOR file."""

from __future__ import annotations

import struct

from otdrs.types import (
    DataPoints,
    DataPointsAtScaleFactor,
    FixedParametersBlock,
    GeneralParametersBlock,
    KeyEvent,
    KeyEvents,
    Landmark,
    LastKeyEvent,
    LinkParameters,
    ProprietaryBlock,
    SupplierParametersBlock,
)

BLOCK_ID_MAP = "Map"
BLOCK_ID_GENPARAMS = "GenParams"
BLOCK_ID_SUPPARAMS = "SupParams"
BLOCK_ID_FXDPARAMS = "FxdParams"
BLOCK_ID_KEYEVENTS = "KeyEvents"
BLOCK_ID_LNKPARAMS = "LnkParams"
BLOCK_ID_DATAPTS = "DataPts"
BLOCK_ID_CHECKSUM = "Cksum"


class ParseError(ValueError):
    """Raised when bytes cannot be decoded as the expected SOR structure."""


class _Reader:
    """Sequential little-endian reader over a byte string."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def take(self, size: int) -> bytes:
        if size < 0:
            raise ParseError(f"invalid length {size}")
        end = self._pos + size
        if end > len(self._data):
            raise ParseError(
                f"unexpected end of data at offset {self._pos}: "
                f"needed {size} bytes, {len(self._data) - self._pos} left"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def rest(self) -> bytes:
        chunk = self._data[self._pos:]
        self._pos = len(self._data)
        return chunk

    def _unpack(self, fmt: str) -> int:
        (value,) = struct.unpack(fmt, self.take(struct.calcsize(fmt)))
        return value

    def i16(self) -> int:
        return self._unpack("<h")

    def u16(self) -> int:
        return self._unpack("<H")

    def i32(self) -> int:
        return self._unpack("<i")

    def u32(self) -> int:
        return self._unpack("<I")

    def array(self, code: str, count: int) -> list[int]:
        if count < 0:
            raise ParseError(f"invalid element count {count}")
        fmt = f"<{count}{code}"
        return list(struct.unpack(fmt, self.take(struct.calcsize(fmt))))

    def header(self, name: str) -> None:
        expected = name.encode("ascii") + b"\0"
        start = self._pos
        found = self._data[start:start + len(expected)]
        if found != expected:
            raise ParseError(f"expected block header {name!r} at offset {start}")
        self._pos += len(expected)

    def cstr(self) -> str:
        end = self._data.find(b"\0", self._pos)
        if end < 0:
            raise ParseError(f"unterminated string at offset {self._pos}")
        raw = self.take(end - self._pos)
        self._pos += 1
        return _decode(raw)

    def fixed_str(self, size: int) -> str:
        return _decode(self.take(size))


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"invalid UTF-8 in string field: {exc}") from exc


def _read_general_parameters(r: _Reader) -> GeneralParametersBlock:
    r.header(BLOCK_ID_GENPARAMS)
    return GeneralParametersBlock(
        language_code=r.fixed_str(2),
        cable_id=r.cstr(),
        fiber_id=r.cstr(),
        fiber_type=r.i16(),
        nominal_wavelength=r.i16(),
        originating_location=r.cstr(),
        terminating_location=r.cstr(),
        cable_code=r.cstr(),
        current_data_flag=r.fixed_str(2),
        user_offset=r.i32(),
        user_offset_distance=r.i32(),
        operator=r.cstr(),
        comment=r.cstr(),
    )


def _read_supplier_parameters(r: _Reader) -> SupplierParametersBlock:
    r.header(BLOCK_ID_SUPPARAMS)
    return SupplierParametersBlock(
        supplier_name=r.cstr(),
        otdr_mainframe_id=r.cstr(),
        otdr_mainframe_sn=r.cstr(),
        optical_module_id=r.cstr(),
        optical_module_sn=r.cstr(),
        software_revision=r.cstr(),
        other=r.cstr(),
    )


def _read_fixed_parameters(r: _Reader) -> FixedParametersBlock:
    r.header(BLOCK_ID_FXDPARAMS)
    date_time_stamp = r.u32()
    units_of_distance = r.fixed_str(2)
    actual_wavelength = r.i16()
    acquisition_offset = r.i32()
    acquisition_offset_distance = r.i32()
    total_n_pulse_widths_used = r.i16()
    pulse_widths_used = r.array("h", total_n_pulse_widths_used)
    data_spacing = r.array("i", total_n_pulse_widths_used)
    n_data_points = r.array("i", total_n_pulse_widths_used)
    return FixedParametersBlock(
        date_time_stamp=date_time_stamp,
        units_of_distance=units_of_distance,
        actual_wavelength=actual_wavelength,
        acquisition_offset=acquisition_offset,
        acquisition_offset_distance=acquisition_offset_distance,
        total_n_pulse_widths_used=total_n_pulse_widths_used,
        pulse_widths_used=pulse_widths_used,
        data_spacing=data_spacing,
        n_data_points_for_pulse_widths_used=n_data_points,
        group_index=r.i32(),
        backscatter_coefficient=r.i16(),
        number_of_averages=r.i32(),
        averaging_time=r.u16(),
        acquisition_range=r.i32(),
        acquisition_range_distance=r.i32(),
        front_panel_offset=r.i32(),
        noise_floor_level=r.u16(),
        noise_floor_scale_factor=r.i16(),
        power_offset_first_point=r.u16(),
        loss_threshold=r.u16(),
        reflectance_threshold=r.u16(),
        end_of_fibre_threshold=r.u16(),
        trace_type=r.fixed_str(2),
        window_coordinate_1=r.i32(),
        window_coordinate_2=r.i32(),
        window_coordinate_3=r.i32(),
        window_coordinate_4=r.i32(),
    )


def _read_event_fields(r: _Reader) -> dict:
    return {
        "event_number": r.i16(),
        "event_propogation_time": r.i32(),
        "attenuation_coefficient_lead_in_fiber": r.i16(),
        "event_loss": r.i16(),
        "event_reflectance": r.i32(),
        "event_code": r.fixed_str(6),
        "loss_measurement_technique": r.fixed_str(2),
        "marker_location_1": r.i32(),
        "marker_location_2": r.i32(),
        "marker_location_3": r.i32(),
        "marker_location_4": r.i32(),
        "marker_location_5": r.i32(),
        "comment": r.cstr(),
    }


def _read_key_event(r: _Reader) -> KeyEvent:
    return KeyEvent(**_read_event_fields(r))


def _read_last_key_event(r: _Reader) -> LastKeyEvent:
    common = _read_event_fields(r)
    return LastKeyEvent(
        **common,
        end_to_end_loss=r.i32(),
        end_to_end_marker_position_1=r.i32(),
        end_to_end_marker_position_2=r.i32(),
        optical_return_loss=r.u16(),
        optical_return_loss_marker_position_1=r.i32(),
        optical_return_loss_marker_position_2=r.i32(),
    )


def _read_key_events(r: _Reader) -> KeyEvents:
    r.header(BLOCK_ID_KEYEVENTS)
    number_of_key_events = r.i16()
    if number_of_key_events < 1:
        raise ParseError(
            f"key events block must hold at least one event, got {number_of_key_events}"
        )
    events = [_read_key_event(r) for _ in range(number_of_key_events - 1)]
    return KeyEvents(
        number_of_key_events=number_of_key_events,
        key_events=events,
        last_key_event=_read_last_key_event(r),
    )


def _read_landmark(r: _Reader) -> Landmark:
    r.header(BLOCK_ID_LNKPARAMS)
    return Landmark(
        landmark_number=r.i16(),
        landmark_code=r.fixed_str(2),
        landmark_location=r.i32(),
        related_event_number=r.i16(),
        gps_longitude=r.i32(),
        gps_latitude=r.i32(),
        fiber_correction_factor_lead_in_fiber=r.i16(),
        sheath_marker_entering_landmark=r.i32(),
        sheath_marker_leaving_landmark=r.i32(),
        units_of_sheath_marks_leaving_landmark=r.fixed_str(2),
        mode_field_diameter_leaving_landmark=r.i16(),
        comment=r.cstr(),
    )


def _read_link_parameters(r: _Reader) -> LinkParameters:
    r.header(BLOCK_ID_LNKPARAMS)
    number_of_landmarks = r.i16()
    if number_of_landmarks < 0:
        raise ParseError(f"invalid landmark count {number_of_landmarks}")
    return LinkParameters(
        number_of_landmarks=number_of_landmarks,
        landmarks=[_read_landmark(r) for _ in range(number_of_landmarks)],
    )


def _read_scale_factor(r: _Reader) -> DataPointsAtScaleFactor:
    n_points = r.i32()
    scale_factor = r.i16()
    return DataPointsAtScaleFactor(
        n_points=n_points,
        scale_factor=scale_factor,
        data=r.array("H", n_points),
    )


def _read_data_points(r: _Reader) -> DataPoints:
    r.header(BLOCK_ID_DATAPTS)
    number_of_data_points = r.i32()
    total = r.i16()
    if total < 0:
        raise ParseError(f"invalid scale factor count {total}")
    return DataPoints(
        number_of_data_points=number_of_data_points,
        total_number_scale_factors_used=total,
        scale_factors=[_read_scale_factor(r) for _ in range(total)],
    )


def general_parameters_block(data: bytes) -> GeneralParametersBlock:
    """Decode a GenParams block."""
    return _read_general_parameters(_Reader(data))


def supplier_parameters_block(data: bytes) -> SupplierParametersBlock:
    """Decode a SupParams block."""
    return _read_supplier_parameters(_Reader(data))


def fixed_parameters_block(data: bytes) -> FixedParametersBlock:
    """Decode a FxdParams block."""
    return _read_fixed_parameters(_Reader(data))


def key_event(data: bytes) -> KeyEvent:
    """Decode one key event other than the last."""
    return _read_key_event(_Reader(data))


def last_key_event(data: bytes) -> LastKeyEvent:
    """Decode the final key event with its end-to-end loss figures."""
    return _read_last_key_event(_Reader(data))


def key_events_block(data: bytes) -> KeyEvents:
    """Decode a KeyEvents block."""
    return _read_key_events(_Reader(data))


def landmark(data: bytes) -> Landmark:
    """Decode one landmark, which carries its own LnkParams header."""
    return _read_landmark(_Reader(data))


def link_parameters_block(data: bytes) -> LinkParameters:
    """Decode a LnkParams block with its landmarks."""
    return _read_link_parameters(_Reader(data))


def data_points_at_scale_factor(data: bytes) -> DataPointsAtScaleFactor:
    """Decode one set of data points sharing a scale factor."""
    return _read_scale_factor(_Reader(data))


def data_points_block(data: bytes) -> DataPoints:
    """Decode a DataPts block."""
    return _read_data_points(_Reader(data))


def proprietary_block(data: bytes) -> ProprietaryBlock:
    """Split a vendor block into its header string and raw payload."""
    r = _Reader(data)
    header = r.cstr()
    return ProprietaryBlock(header=header, data=r.rest())