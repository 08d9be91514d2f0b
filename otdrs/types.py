"""Data structures describing the contents of a Bellcore/Telcordia SOR file."""

import json
import types
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Annotated, Any, Optional, Union, get_args, get_origin


@dataclass(frozen=True)
class _Range:
    """Inclusive bounds of a fixed-width integer field."""

    name: str
    low: int
    high: int


U8 = Annotated[int, _Range("u8", 0, 0xFF)]
U16 = Annotated[int, _Range("u16", 0, 0xFFFF)]
U32 = Annotated[int, _Range("u32", 0, 0xFFFF_FFFF)]
I16 = Annotated[int, _Range("i16", -0x8000, 0x7FFF)]
I32 = Annotated[int, _Range("i32", -0x8000_0000, 0x7FFF_FFFF)]


@dataclass
class BlockInfo:
    """Describes one block later in the file; listed in the map block."""

    identifier: str
    revision_number: U16
    size: I32


@dataclass
class MapBlock:
    """The map that every SOR file starts with."""

    revision_number: U16
    block_size: I32
    block_count: I16
    block_info: list[BlockInfo] = field(default_factory=list)


@dataclass
class GeneralParametersBlock:
    """Test identification and general acquisition information."""

    language_code: str
    cable_id: str
    fiber_id: str
    fiber_type: I16
    nominal_wavelength: I16
    originating_location: str
    terminating_location: str
    cable_code: str
    current_data_flag: str
    user_offset: I32
    user_offset_distance: I32
    operator: str
    comment: str


@dataclass
class SupplierParametersBlock:
    """Information about the OTDR unit that produced the file."""

    supplier_name: str
    otdr_mainframe_id: str
    otdr_mainframe_sn: str
    optical_module_id: str
    optical_module_sn: str
    software_revision: str
    other: str


@dataclass
class FixedParametersBlock:
    """Parameters needed to interpret the stored trace data."""

    date_time_stamp: U32
    units_of_distance: str
    actual_wavelength: I16
    acquisition_offset: I32
    acquisition_offset_distance: I32
    total_n_pulse_widths_used: I16
    pulse_widths_used: list[I16]
    data_spacing: list[I32]
    n_data_points_for_pulse_widths_used: list[I32]
    group_index: I32
    backscatter_coefficient: I16
    number_of_averages: I32
    averaging_time: U16
    acquisition_range: I32
    acquisition_range_distance: I32
    front_panel_offset: I32
    noise_floor_level: U16
    noise_floor_scale_factor: I16
    power_offset_first_point: U16
    loss_threshold: U16
    reflectance_threshold: U16
    end_of_fibre_threshold: U16
    trace_type: str
    window_coordinate_1: I32
    window_coordinate_2: I32
    window_coordinate_3: I32
    window_coordinate_4: I32


@dataclass
class KeyEvent:
    """A single event along the fibre detected by the OTDR."""

    event_number: I16
    event_propogation_time: I32
    attenuation_coefficient_lead_in_fiber: I16
    event_loss: I16
    event_reflectance: I32
    event_code: str
    loss_measurement_technique: str
    marker_location_1: I32
    marker_location_2: I32
    marker_location_3: I32
    marker_location_4: I32
    marker_location_5: I32
    comment: str


@dataclass
class LastKeyEvent:
    """The final key event, carrying the end-to-end loss figures as well."""

    event_number: I16
    event_propogation_time: I32
    attenuation_coefficient_lead_in_fiber: I16
    event_loss: I16
    event_reflectance: I32
    event_code: str
    loss_measurement_technique: str
    marker_location_1: I32
    marker_location_2: I32
    marker_location_3: I32
    marker_location_4: I32
    marker_location_5: I32
    comment: str
    end_to_end_loss: I32
    end_to_end_marker_position_1: I32
    end_to_end_marker_position_2: I32
    optical_return_loss: U16
    optical_return_loss_marker_position_1: I32
    optical_return_loss_marker_position_2: I32


@dataclass
class KeyEvents:
    """All key events of a trace, the last one stored separately."""

    number_of_key_events: I16
    key_events: list[KeyEvent]
    last_key_event: LastKeyEvent


@dataclass
class Landmark:
    """Relates OTDR events to real-world features of the fibre path."""

    landmark_number: I16
    landmark_code: str
    landmark_location: I32
    related_event_number: I16
    gps_longitude: I32
    gps_latitude: I32
    fiber_correction_factor_lead_in_fiber: I16
    sheath_marker_entering_landmark: I32
    sheath_marker_leaving_landmark: I32
    units_of_sheath_marks_leaving_landmark: str
    mode_field_diameter_leaving_landmark: I16
    comment: str


@dataclass
class DataPointsAtScaleFactor:
    """Trace samples sharing one scale factor."""

    n_points: I32
    scale_factor: I16
    data: list[U16]


@dataclass
class DataPoints:
    """All trace data sets in the file, one per scale factor."""

    number_of_data_points: I32
    total_number_scale_factors_used: I16
    scale_factors: list[DataPointsAtScaleFactor]


@dataclass
class LinkParameters:
    """Landmarks describing the physical fibre path."""

    number_of_landmarks: I16
    landmarks: list[Landmark]


@dataclass
class ProprietaryBlock:
    """A vendor-specific block: its header and raw payload."""

    header: str
    data: bytes


@dataclass
class SORFile:
    """A complete SOR file. Every block apart from the map may be absent."""

    map: MapBlock
    general_parameters: Optional[GeneralParametersBlock] = None
    supplier_parameters: Optional[SupplierParametersBlock] = None
    fixed_parameters: Optional[FixedParametersBlock] = None
    key_events: Optional[KeyEvents] = None
    link_parameters: Optional[LinkParameters] = None
    data_points: Optional[DataPoints] = None
    proprietary_blocks: list[ProprietaryBlock] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain structure of dicts, lists, strings and integers."""
        return _dump(self)

    @classmethod
    def from_dict(cls, data: Any) -> "SORFile":
        """Build a SORFile from the structure produced by to_dict.

        Raises ValueError when a field is missing, has the wrong type or is
        out of range for its width.
        """
        return _load(cls, data, "sor")

    def to_json(self) -> str:
        """Serialise to compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "SORFile":
        """Deserialise from JSON; raises ValueError on malformed input."""
        return cls.from_dict(json.loads(text))


def _dump(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _dump(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _load(tp: Any, value: Any, path: str) -> Any:
    origin = get_origin(tp)

    if origin is Annotated:
        base, *extras = get_args(tp)
        result = _load(base, value, path)
        for extra in extras:
            if isinstance(extra, _Range) and not extra.low <= result <= extra.high:
                raise ValueError(f"{path}: {result} is out of range for {extra.name}")
        return result

    if origin is Union or origin is types.UnionType:
        if value is None:
            return None
        inner = [arg for arg in get_args(tp) if arg is not type(None)]
        return _load(inner[0], value, path)

    if origin is list:
        if not isinstance(value, list):
            raise ValueError(f"{path}: expected a list")
        (item_type,) = get_args(tp)
        return [_load(item_type, item, f"{path}[{n}]") for n, item in enumerate(value)]

    if tp is bytes:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if not isinstance(value, list):
            raise ValueError(f"{path}: expected a list of bytes")
        return bytes(_load(U8, item, f"{path}[{n}]") for n, item in enumerate(value))

    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{path}: expected an integer")
        return value

    if tp is str:
        if not isinstance(value, str):
            raise ValueError(f"{path}: expected a string")
        return value

    if is_dataclass(tp):
        if not isinstance(value, dict):
            raise ValueError(f"{path}: expected an object")
        kwargs = {}
        for f in fields(tp):
            if f.name not in value:
                raise ValueError(f"{path}: missing field {f.name!r}")
            kwargs[f.name] = _load(f.type, value[f.name], f"{path}.{f.name}")
        return tp(**kwargs)

    raise TypeError(f"{path}: unsupported field type {tp!r}")