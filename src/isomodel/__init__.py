"""
isomodel: one view-model definition, identical output in every runtime.

Build time:
    Python view-model classes → manifests → transpiled computed
    properties → C# / TypeScript / Python classes

Render time:
    layout + immutable state snapshot → render plan → logicless
    templates → markup

ARCHITECTURAL GUARANTEE:
------------------------
Both pipelines are pure transformations:
    - Manifests are derived by static inference, never by importing
      or executing authoring code
    - Snapshots are frozen; nothing in the render pipeline writes back
    - The same inputs always produce the same bytes
"""

__version__ = "0.1.0"
