#!/usr/bin/env python3
"""Validate fleet YAML files against the schema."""
import sys
from pathlib import Path
from typing import List, Optional

import yaml
from jsonschema import validate, ValidationError


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def validate_fleet_file(filepath: Path, schema: dict) -> List[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data, schema=schema)
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv: Optional[List[str]] = None):
    """Validate the given fleet files, or every file in the fleets/ directory."""
    schema = load_schema()
    argv = sys.argv[1:] if argv is None else argv

    if argv:
        yaml_files = [Path(p) for p in argv]
    else:
        fleets_dir = Path(__file__).parent / "fleets"
        if not fleets_dir.exists():
            print(f"Error: fleets directory not found: {fleets_dir}")
            return 1
        yaml_files = list(fleets_dir.glob("*.yaml")) + list(fleets_dir.glob("*.yml"))

    if not yaml_files:
        print("Warning: No YAML files found")
        return 0

    all_valid = True
    for filepath in sorted(yaml_files):
        errors = validate_fleet_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
