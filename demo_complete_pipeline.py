#!/usr/bin/env python3
"""
Complete Pipeline Demo: View-models → Manifests → Generated Classes → Rendered Page

Shows the full workflow:
1. Parse Python view-model classes into manifests
2. Transpile computed properties
3. Generate C#, TypeScript and Python classes
4. Interpret a layout against a state snapshot
5. Render the page with both template engines
"""

from isomodel.backends import TargetLanguage, generate_class
from isomodel.examples import (
    build_example_layout,
    build_example_manifests,
    build_example_registry,
    build_example_snapshot,
)
from isomodel.layout import interpret_layout
from isomodel.model import describe_type
from isomodel.renderer import Engine, render_page
from isomodel.serialization import manifest_to_yaml


def main():
    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: View-models → Manifests → Classes → Page")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Build manifests
    # =========================================================================
    print("\n1. BUILDING MANIFESTS...")
    manifests = build_example_manifests()
    for descriptor in manifests:
        parent = f" extends {descriptor.parent_name}" if descriptor.parent else ""
        print(f"   ✓ {descriptor.name}{parent}")
        for prop in descriptor.properties:
            kind = "computed" if prop.computed else "field"
            print(f"      - {prop.name}: {describe_type(prop.type)} ({kind})")

    # =========================================================================
    # STEP 2: Generate classes
    # =========================================================================
    print("\n2. GENERATING CLASSES FOR Movie...")
    movie = manifests.get_class("Movie")
    for target in TargetLanguage:
        print(f"\n   --- {target.value} ---")
        for line in generate_class(movie, target).splitlines():
            print(f"   {line}")

    # =========================================================================
    # STEP 3: Manifest
    # =========================================================================
    print("\n3. MANIFEST (YAML, first 20 lines):")
    print("-" * 80)
    lines = manifest_to_yaml(manifests).splitlines()
    for line in lines[:20]:
        print(f"   {line}")
    if len(lines) > 20:
        print(f"   ... ({len(lines) - 20} more lines)")

    # =========================================================================
    # STEP 4: Render plan
    # =========================================================================
    print("\n4. RENDER PLAN...")
    layout = build_example_layout()
    snapshot = build_example_snapshot()
    registry = build_example_registry()
    for unit in interpret_layout(layout, snapshot, registry):
        print(f"   ✓ {unit.name}")

    # =========================================================================
    # STEP 5: Render with both engines
    # =========================================================================
    print("\n5. RENDERED PAGE:")
    print("-" * 80)
    interpreted = render_page(layout, snapshot, registry)
    compiled = render_page(layout, snapshot, build_example_registry(Engine.COMPILED))
    print(interpreted)
    print(f"   Engines agree: {interpreted == compiled}")

    signed_out = build_example_snapshot(user={"isSignedIn": False})
    print(f"   Sidebar when signed out: {'<nav>' in render_page(layout, signed_out, registry)}")

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE!")
    print("=" * 80)


if __name__ == "__main__":
    main()
