"""Shared test fixtures."""

import sys
from pathlib import Path

import pytest

# Ensure src and the shared builders are in path
sys.path.insert(0, "src")
sys.path.insert(0, str(Path(__file__).parent))

from builders import FakeSource, dump, enum, func, info, klass, prim, prop  # noqa: E402


@pytest.fixture
def part_history():
    """Three builds: Part appears, gains Anchored and an enum, then changes."""
    api1 = dump(klass("Instance", prop("Name", prim("string"))))
    api2 = dump(
        klass("Instance", prop("Name", prim("string"))),
        klass("Part", prop("Size", prim("Vector3")), superclass="Instance"),
        enum("Material", ("Plastic", 256), ("Wood", 512)),
    )
    api3 = dump(
        klass("Instance", prop("Name", prim("string")), func("Destroy")),
        klass(
            "Part",
            prop("Size", prim("Vector3")),
            prop("Anchored"),
            superclass="Instance",
            tags=["Deprecated"],
        ),
        enum("Material", ("Plastic", 256), ("Wood", 512), ("Slate", 800)),
    )
    return [
        (info("h1", 1, "0.1.0.1"), api1),
        (info("h2", 2, "0.2.0.1"), api2),
        (info("h3", 3, "0.3.0.1"), api3),
    ]


@pytest.fixture
def part_source(part_history):
    """FakeSource serving part_history under the "win" configuration."""
    return FakeSource(
        builds={"win": [i for i, _ in part_history]},
        dumps={i.hash: api for i, api in part_history},
    )
