"""Root-level conftest.py: ensure this checkout's cidash package takes precedence.

When cidash is also installed (editable or not) from another checkout, tests
run here must import the local copy so changes are picked up without
reinstalling.
"""

import sys
from pathlib import Path

_root = str(Path(__file__).parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

for _mod in list(sys.modules):
    if _mod == "cidash" or _mod.startswith("cidash."):
        del sys.modules[_mod]
