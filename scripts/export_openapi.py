#!/usr/bin/env python3
"""
Write the API's OpenAPI specification to openapi.yaml.

Usage:
    python scripts/export_openapi.py [output-path]
"""

import sys
from pathlib import Path

import yaml

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from campus_social.main import app  # noqa: E402


def main() -> None:
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else project_root / "openapi.yaml"
    spec = app.openapi()

    with open(output, "w") as f:
        yaml.safe_dump(spec, f, sort_keys=False, allow_unicode=True)

    print(f"✓ Wrote {len(spec.get('paths', {}))} paths to {output}")


if __name__ == "__main__":
    main()
