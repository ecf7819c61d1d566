#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from validate_yaml import load_schema, main, validate_fleet_file


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        assert "vehicles" in schema["properties"]
        assert "serviceRecords" in schema["properties"]
        assert "checkoutBody" in schema["$defs"]


class TestValidateFleetFile:
    """Tests for validate_fleet_file function."""

    def test_valid_minimal_returns_no_errors(self, tmp_path):
        """Valid minimal fleet file returns empty error list."""
        path = tmp_path / "valid.yaml"
        path.write_text("""
vehicles:
  - vehicleId: VAN-01
    make: Ford
    model: Transit
    year: 2021
    licensePlate: AB-123-CD
""")
        errors = validate_fleet_file(path, load_schema())
        assert errors == []

    def test_missing_required_field_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
vehicles:
  - vehicleId: VAN-01
    make: Ford
    model: Transit
    year: 2021
""")
        errors = validate_fleet_file(path, load_schema())
        assert any("Schema validation" in e for e in errors)
        assert any("licensePlate" in e for e in errors)

    def test_unknown_field_rejected(self, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("""
vehicles:
  - vehicleId: VAN-01
    make: Ford
    model: Transit
    year: 2021
    licensePlate: AB-123-CD
    gpsTrace: []
""")
        errors = validate_fleet_file(path, load_schema())
        assert errors
        assert "at path: vehicles.0" in errors[-1]

    def test_fuel_out_of_range(self, tmp_path):
        path = tmp_path / "fuel.yaml"
        path.write_text("""
vehicles:
  - vehicleId: VAN-01
    make: Ford
    model: Transit
    year: 2021
    licensePlate: AB-123-CD
    fuelLevel: 130
""")
        assert validate_fleet_file(path, load_schema())

    def test_invalid_yaml_returns_parse_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("vehicles: [unclosed\n")
        errors = validate_fleet_file(path, load_schema())
        assert any("YAML" in e for e in errors)

    def test_nonexistent_file_returns_errors(self, tmp_path):
        errors = validate_fleet_file(tmp_path / "does_not_exist.yaml", load_schema())
        assert len(errors) >= 1
        assert errors[0].startswith("Error:")


class TestMain:
    def test_shipped_fleets_are_valid(self, capsys):
        assert main([]) == 0
        assert "OK: depot.yaml" in capsys.readouterr().out

    def test_explicit_file(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("vehicles: 3\n")
        assert main([str(path)]) == 1
        assert "FAIL: bad.yaml" in capsys.readouterr().out
