"""Local archive example.

Demonstrates:
- Laying out a file archive of build lists and API dumps
- Running the pipeline twice: the second run reuses every cached patch
- Walking the entity graph and reading back the outputs
"""

import json
import tempfile
from pathlib import Path

from apiref import ArchiveClient, Settings, run_pipeline
from apiref.codec import decode_search_index, read_manifest


def dump(*classes: dict) -> dict:
    return {"Version": 1, "Classes": list(classes), "Enums": []}


def part(*members: dict) -> dict:
    return {
        "Name": "Part",
        "Superclass": "Instance",
        "MemoryCategory": "PhysicsParts",
        "Members": list(members),
        "Tags": [],
    }


INSTANCE = {"Name": "Instance", "Superclass": "<<<ROOT>>>", "Members": [], "Tags": ["NotCreatable"]}
SIZE = {
    "MemberType": "Property",
    "Name": "Size",
    "ValueType": {"Category": "DataType", "Name": "Vector3"},
    "Category": "Data",
    "Security": "None",
}
ANCHORED = {
    "MemberType": "Property",
    "Name": "Anchored",
    "ValueType": {"Category": "Primitive", "Name": "bool"},
    "Category": "Behavior",
    "Security": "None",
}

BUILDS = [
    ("version-1", "2024-01-01T00:00:00Z", "0.600.0.1", dump(INSTANCE, part(SIZE))),
    ("version-2", "2024-01-08T00:00:00Z", "0.601.0.1", dump(INSTANCE, part(SIZE, ANCHORED))),
]


def make_archive(root: Path) -> None:
    (root / "dumps").mkdir(parents=True)
    builds = []
    for build_hash, date, version, api in BUILDS:
        builds.append({"Hash": build_hash, "Date": date, "Version": version})
        (root / "dumps" / f"{build_hash}.json").write_text(json.dumps(api))
    (root / "builds.json").write_text(json.dumps(builds))


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        make_archive(root / "archive")

        settings = Settings(
            output={"root": root / "site"},
            build={
                "configs": {
                    "win": {
                        "builds": ["archive/builds.json"],
                        "api_dump": ["archive/dumps/$HASH.json"],
                    }
                },
                "use_configs": ["win"],
                "disable_rewind": True,
            },
        )
        source = ArchiveClient(base_dir=root)

        first = run_pipeline(settings, source)
        print(f"First run: {len(first.patches)} patches, {first.new_patches} new")
        second = run_pipeline(settings, source)
        print(f"Second run: {len(second.patches)} patches, {second.new_patches} new")

        print("\nChange log of Part:")
        for patch in second.graph.classes["Part"].change_log():
            for action in patch.actions:
                print(f"  {patch.info.version}: {action}")

        print("\nEntities:")
        for entity in second.graph.iter_all():
            print(f"  {type(entity).__name__:<15} {entity.id}")

        patches = read_manifest(second.manifest_path)
        index = decode_search_index(second.search_path.read_bytes())
        print(f"\nManifest holds {len(patches)} patches; search index holds {len(index.items)} names")


if __name__ == "__main__":
    main()
