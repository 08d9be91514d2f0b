import json

import pytest

from otdrs.types import (
    BlockInfo,
    DataPoints,
    DataPointsAtScaleFactor,
    FixedParametersBlock,
    GeneralParametersBlock,
    KeyEvent,
    KeyEvents,
    Landmark,
    LastKeyEvent,
    LinkParameters,
    MapBlock,
    ProprietaryBlock,
    SORFile,
    SupplierParametersBlock,
)


def _sample() -> SORFile:
    return SORFile(
        map=MapBlock(
            revision_number=200,
            block_size=172,
            block_count=3,
            block_info=[
                BlockInfo(identifier="GenParams", revision_number=200, size=58),
                BlockInfo(identifier="Cksum", revision_number=200, size=8),
            ],
        ),
        general_parameters=GeneralParametersBlock(
            language_code="EN",
            cable_id="C001 ",
            fiber_id="009",
            fiber_type=652,
            nominal_wavelength=1550,
            originating_location="CAB000 ",
            terminating_location="CLS007 ",
            cable_code=" ",
            current_data_flag="NC",
            user_offset=24641,
            user_offset_distance=503,
            operator=" ",
            comment=" ",
        ),
        supplier_parameters=SupplierParametersBlock(
            supplier_name="Noyes",
            otdr_mainframe_id="OFL280C-100",
            otdr_mainframe_sn="SN-EXAMPLE-0000",
            optical_module_id="0.0.43 ",
            optical_module_sn=" ",
            software_revision="1.2.04b1011F ",
            other="Last Calibration Date:  2019-03-25 ",
        ),
        fixed_parameters=FixedParametersBlock(
            date_time_stamp=1569835674,
            units_of_distance="mt",
            actual_wavelength=1550,
            acquisition_offset=-2147,
            acquisition_offset_distance=-42,
            total_n_pulse_widths_used=1,
            pulse_widths_used=[30],
            data_spacing=[100000],
            n_data_points_for_pulse_widths_used=[30000],
            group_index=146750,
            backscatter_coefficient=802,
            number_of_averages=2704,
            averaging_time=3000,
            acquisition_range=300000,
            acquisition_range_distance=6000,
            front_panel_offset=2147,
            noise_floor_level=30342,
            noise_floor_scale_factor=1000,
            power_offset_first_point=0,
            loss_threshold=50,
            reflectance_threshold=65000,
            end_of_fibre_threshold=3000,
            trace_type="ST",
            window_coordinate_1=0,
            window_coordinate_2=0,
            window_coordinate_3=0,
            window_coordinate_4=0,
        ),
        key_events=KeyEvents(
            number_of_key_events=2,
            key_events=[
                KeyEvent(
                    event_number=1,
                    event_propogation_time=0,
                    attenuation_coefficient_lead_in_fiber=0,
                    event_loss=-215,
                    event_reflectance=-46671,
                    event_code="1F9999",
                    loss_measurement_technique="LS",
                    marker_location_1=0,
                    marker_location_2=0,
                    marker_location_3=0,
                    marker_location_4=0,
                    marker_location_5=0,
                    comment=" ",
                )
            ],
            last_key_event=LastKeyEvent(
                event_number=2,
                event_propogation_time=182802,
                attenuation_coefficient_lead_in_fiber=185,
                event_loss=-950,
                event_reflectance=-23027,
                event_code="2E9999",
                loss_measurement_technique="LS",
                marker_location_1=0,
                marker_location_2=0,
                marker_location_3=0,
                marker_location_4=0,
                marker_location_5=0,
                comment=" ",
                end_to_end_loss=576,
                end_to_end_marker_position_1=0,
                end_to_end_marker_position_2=182809,
                optical_return_loss=24516,
                optical_return_loss_marker_position_1=0,
                optical_return_loss_marker_position_2=182809,
            ),
        ),
        link_parameters=None,
        data_points=DataPoints(
            number_of_data_points=3,
            total_number_scale_factors_used=1,
            scale_factors=[
                DataPointsAtScaleFactor(n_points=3, scale_factor=1000, data=[0, 30342, 65535])
            ],
        ),
        proprietary_blocks=[ProprietaryBlock(header="FodParams", data=b"\x00\x01\xff")],
    )


def test_dict_round_trip():
    sor = _sample()
    assert SORFile.from_dict(sor.to_dict()) == sor


def test_json_round_trip():
    sor = _sample()
    assert SORFile.from_json(sor.to_json()) == sor


def test_json_round_trip_with_link_parameters():
    sor = _sample()
    sor.link_parameters = LinkParameters(
        number_of_landmarks=1,
        landmarks=[
            Landmark(
                landmark_number=0,
                landmark_code="",
                landmark_location=0,
                related_event_number=0,
                gps_longitude=0,
                gps_latitude=0,
                fiber_correction_factor_lead_in_fiber=0,
                sheath_marker_entering_landmark=0,
                sheath_marker_leaving_landmark=0,
                units_of_sheath_marks_leaving_landmark="",
                mode_field_diameter_leaving_landmark=0,
                comment="",
            )
        ],
    )
    restored = SORFile.from_json(sor.to_json())
    assert restored.link_parameters == sor.link_parameters


def test_dict_uses_source_field_names():
    d = _sample().to_dict()
    assert d["fixed_parameters"]["date_time_stamp"] == 1569835674
    assert d["supplier_parameters"]["supplier_name"] == "Noyes"
    assert d["key_events"]["key_events"][0]["event_propogation_time"] == 0
    assert d["map"]["block_info"][0]["identifier"] == "GenParams"


def test_absent_blocks_serialise_as_null():
    sor = SORFile(map=MapBlock(revision_number=200, block_size=0, block_count=1))
    parsed = json.loads(sor.to_json())
    assert parsed["general_parameters"] is None
    assert parsed["link_parameters"] is None
    assert parsed["proprietary_blocks"] == []


def test_proprietary_data_is_list_of_integers():
    d = _sample().to_dict()
    assert d["proprietary_blocks"][0]["data"] == [0, 1, 255]
    restored = SORFile.from_dict(d)
    assert restored.proprietary_blocks[0].data == b"\x00\x01\xff"


def test_unknown_fields_ignored():
    d = _sample().to_dict()
    d["extra"] = 1
    assert SORFile.from_dict(d) == _sample()


def test_missing_field_raises():
    d = _sample().to_dict()
    del d["general_parameters"]["cable_id"]
    with pytest.raises(ValueError, match="cable_id"):
        SORFile.from_dict(d)


def test_missing_map_raises():
    d = _sample().to_dict()
    del d["map"]
    with pytest.raises(ValueError):
        SORFile.from_dict(d)


def test_out_of_range_u16_raises():
    d = _sample().to_dict()
    d["fixed_parameters"]["averaging_time"] = 70000
    with pytest.raises(ValueError, match="u16"):
        SORFile.from_dict(d)


def test_negative_unsigned_raises():
    d = _sample().to_dict()
    d["data_points"]["scale_factors"][0]["data"][0] = -1
    with pytest.raises(ValueError):
        SORFile.from_dict(d)


def test_out_of_range_byte_raises():
    d = _sample().to_dict()
    d["proprietary_blocks"][0]["data"] = [256]
    with pytest.raises(ValueError):
        SORFile.from_dict(d)


def test_wrong_types_raise():
    d = _sample().to_dict()
    d["general_parameters"]["fiber_type"] = "652"
    with pytest.raises(ValueError):
        SORFile.from_dict(d)

    d = _sample().to_dict()
    d["general_parameters"]["cable_id"] = 5
    with pytest.raises(ValueError):
        SORFile.from_dict(d)


def test_boolean_is_not_an_integer():
    d = _sample().to_dict()
    d["map"]["revision_number"] = True
    with pytest.raises(ValueError):
        SORFile.from_dict(d)


def test_non_object_input_raises():
    with pytest.raises(ValueError):
        SORFile.from_json("[1, 2, 3]")


def test_invalid_json_raises():
    with pytest.raises(ValueError):
        SORFile.from_json("{not json")


def test_modification_survives_round_trip():
    sor = _sample()
    sor.general_parameters.comment = "spliced"
    sor.proprietary_blocks.clear()
    restored = SORFile.from_json(sor.to_json())
    assert restored.general_parameters.comment == "spliced"
    assert restored.proprietary_blocks == []