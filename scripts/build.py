#!/usr/bin/env python3
"""
Build script for the users and files Lambda functions.

Each function zip holds its lambda_function.py, the shared ecommerce package
and the runtime dependencies declared in pyproject.toml.
"""
import os
import shutil
import subprocess
import sys
import tomllib
import zipfile
from pathlib import Path

FUNCTIONS = ("users", "files")
SHARED_PACKAGE = "ecommerce"


def runtime_dependencies(project_root: Path) -> list[str]:
    """Read the [project] dependencies from pyproject.toml."""
    with open(project_root / "pyproject.toml", "rb") as f:
        return tomllib.load(f)["project"]["dependencies"]


def main():
    """Main build function"""
    project_root = Path(__file__).parent.parent
    src_dir = project_root / "src"
    build_dir = project_root / "build"

    build_dir.mkdir(exist_ok=True)
    dependencies = runtime_dependencies(project_root)

    print(f"Building Lambda functions: {list(FUNCTIONS)}")

    for function_name in FUNCTIONS:
        function_dir = src_dir / function_name
        zip_path = build_dir / f"{function_name}.zip"

        print(f"Building {function_name}...")

        temp_dir = build_dir / f"temp_{function_name}"
        if temp_dir.exists():
            shutil.rmtree(temp_dir)
        temp_dir.mkdir()

        shutil.copytree(function_dir, temp_dir, dirs_exist_ok=True)
        shutil.copytree(
            src_dir / SHARED_PACKAGE,
            temp_dir / SHARED_PACKAGE,
            ignore=shutil.ignore_patterns("__pycache__"),
        )

        print(f"Installing dependencies for {function_name}...")
        subprocess.run([
            sys.executable, "-m", "pip", "install",
            *dependencies,
            "-t", str(temp_dir),
        ], check=True)

        print(f"Creating {function_name}.zip...")
        with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
            for root, _, files in os.walk(temp_dir):
                for file in files:
                    file_path = Path(root) / file
                    arcname = file_path.relative_to(temp_dir)
                    zipf.write(file_path, arcname)

        shutil.rmtree(temp_dir)

        print(f"{function_name}.zip created ({zip_path.stat().st_size} bytes)")

    print("Build complete!")


if __name__ == "__main__":
    main()
