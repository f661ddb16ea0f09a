#!/usr/bin/env python3
"""
OpenAPI specification generator for the e-commerce backend.

The users and files functions each own an APIGatewayRestResolver. This script
builds the OpenAPI schema of both resolvers from their route decorators and
Pydantic models and merges them into a single document.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import yaml

TITLE = "E-commerce Backend API"
DESCRIPTION = """
User management and file upload API backed by Amazon Cognito, AWS KMS, Amazon S3,
a relational database and a Redis cache.

Every response uses the same envelope: `statusCode`, `message` and either `data`
on success or `error` on failure.
"""


def get_openapi_spec() -> Dict[str, Any]:
    """
    Generate the merged OpenAPI specification of the users and files resolvers.

    Returns:
        OpenAPI specification dictionary
    """
    sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

    from ecommerce.handlers.files_handler import app as files_app
    from ecommerce.handlers.users_handler import app as users_app

    spec = users_app.get_openapi_schema(title=TITLE, version="1.0.0").model_dump(
        by_alias=True, exclude_none=True, mode="json"
    )
    files_spec = files_app.get_openapi_schema(title=TITLE, version="1.0.0").model_dump(
        by_alias=True, exclude_none=True, mode="json"
    )

    spec.setdefault("paths", {}).update(files_spec.get("paths", {}))
    schemas = spec.setdefault("components", {}).setdefault("schemas", {})
    schemas.update(files_spec.get("components", {}).get("schemas", {}))
    spec["tags"] = [
        {"name": "Users", "description": "Registration, authentication, password reset and user CRUD"},
        {"name": "Files", "description": "KMS-encrypted file uploads to S3"},
    ]
    spec["info"]["description"] = DESCRIPTION.strip()
    return spec


def validate_openapi_spec(spec: Dict[str, Any]) -> bool:
    """Check the structural fields every OpenAPI 3.x document needs."""
    for field in ("openapi", "info", "paths"):
        if field not in spec:
            print(f"Error: Missing required field '{field}' in OpenAPI spec")
            return False

    for field in ("title", "version"):
        if field not in spec["info"]:
            print(f"Error: Missing required field 'info.{field}' in OpenAPI spec")
            return False

    if not spec["openapi"].startswith("3."):
        print(f"Warning: OpenAPI version '{spec['openapi']}' is not 3.x")

    print("OpenAPI specification validation passed")
    return True


def main():
    """Main function for the OpenAPI generator script."""
    parser = argparse.ArgumentParser(description="Generate OpenAPI specification for the e-commerce backend")
    parser.add_argument("--format", choices=["json", "yaml"], default="yaml", help="Output format (default: yaml)")
    parser.add_argument("--out-destination", default=".", help="Output directory (default: current directory)")
    parser.add_argument("--out-filename", help="Output filename (default: openapi.{format})")
    parser.add_argument("--validate", action="store_true", help="Validate the generated specification")

    args = parser.parse_args()

    print("Generating OpenAPI specification...")
    spec = get_openapi_spec()
    spec["info"]["x-generated"] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "generator": "ecommerce-backend/openapi-generator",
    }

    if args.validate and not validate_openapi_spec(spec):
        sys.exit(1)

    output_dir = Path(args.out_destination)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / (args.out_filename or f"openapi.{args.format}")

    with open(output_path, "w", encoding="utf-8") as f:
        if args.format == "json":
            json.dump(spec, f, indent=2, ensure_ascii=False)
        else:
            yaml.dump(spec, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    paths = spec.get("paths", {})
    total_operations = sum(
        len([k for k in path_obj if k in ("get", "post", "put", "patch", "delete")]) for path_obj in paths.values()
    )
    print(f"OpenAPI specification written to: {output_path}")
    print(f"Paths: {len(paths)}, operations: {total_operations}")


if __name__ == "__main__":
    main()
