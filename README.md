# otdrs

`otdrs` reads the binary SOR files that optical time-domain reflectometers
(OTDRs) produce in the Telcordia/Bellcore format. It turns them into plain
Python dataclasses, writes them out as JSON or CBOR, and can write a SOR file
back from those objects with a freshly built map and checksum.

## Installation

```
pip install otdrs
```

To run the test suite:

```
pip install "otdrs[test]"
pytest
```

## Command line

Two commands are installed. Both exit with status 0 on success and 1, with a
message on standard error, when a file cannot be read, parsed or written.

`otdrs` converts a SOR file to JSON (the default) or CBOR:

```
otdrs trace.sor
otdrs trace.sor --format cbor --output-filename trace.cbor
```

Options:

- `-f`, `--format`: `json` or `cbor`; any other value is an error
- `-o`, `--output-filename`: file to write; the default, `stdout`, writes to
  standard output
- `-m`, `--modify-script`: a file that must exist and be readable; its
  contents are not interpreted

`wotdrs` takes a JSON file produced by `otdrs`, drops every proprietary
(vendor-specific) block, writes a SOR file and reports the path it wrote:

```
wotdrs --input trace.json --output clean.sor
```

## Library use

```python
from otdrs.parser import parse_file
from otdrs.writer import to_bytes
from otdrs.rewrite import strip_proprietary
from otdrs.convert import serialize

with open("trace.sor", "rb") as fh:
    sor = parse_file(fh.read())

print(sor.general_parameters.nominal_wavelength)
print(sor.fixed_parameters.date_time_stamp)
print(sor.data_points.number_of_data_points)

json_bytes = serialize(sor, "json")
cbor_bytes = serialize(sor, "cbor")

clean = strip_proprietary(sor)  # a copy; sor itself is unchanged
with open("clean.sor", "wb") as fh:
    fh.write(to_bytes(clean))
```

A `SORFile` (in `otdrs.types`) can be moved to and from plain data with
`SORFile.to_dict`, `SORFile.from_dict`, `SORFile.to_json` and
`SORFile.from_json`. In that form a proprietary block's payload is a list of
byte values. `from_dict` and `from_json` raise `ValueError` when a field is
missing, has the wrong type, or does not fit its integer width.

### Reading

`otdrs.parser` provides `map_block`, `extract_block_data` and `parse_file`.
`parse_file` decodes these blocks:

- `Map`: the block directory of the file
- `GenParams`: cable, fibre and location details, nominal wavelength
- `SupParams`: details of the instrument and its software
- `FxdParams`: acquisition settings needed to interpret the trace
- `KeyEvents`: detected events along the fibre and end-to-end loss
- `DataPts`: the trace samples for each scale factor

Any other block, apart from `LnkParams` and `Cksum`, is kept as a
`ProprietaryBlock`: its header and raw bytes.

Individual blocks can be decoded on their own with the functions in
`otdrs.blocks`, which raise `otdrs.blocks.ParseError` (a `ValueError`) on
malformed input.

### Writing

`otdrs.writer.to_bytes` rebuilds the map from the blocks present, in the
order general, supplier, fixed parameters, key events, data points, then the
proprietary blocks. Every block written needs a matching entry in the
`SORFile`'s own `map.block_info`, whose revision number is carried over. A
`Cksum` block is always appended, holding a CRC-16/KERMIT
(`otdrs.writer.crc16_kermit`) of everything before it. Encoding problems,
such as a missing map entry, a value out of range for its field, or a
fixed-length field holding a non-ASCII character, raise
`otdrs.writer.WriteError`. The per-block encoders (`encode_map`,
`encode_general_parameters` and so on) are available as well.

## Limitations

- Link parameters (`LnkParams`) are skipped by `parse_file` and never written
  by `to_bytes`; `otdrs.blocks.link_parameters_block` can decode such a block
  when called directly.
- The checksum of a file being read is not verified.
- `to_bytes` does not check that mandatory blocks are present; it writes
  whatever blocks the `SORFile` holds.