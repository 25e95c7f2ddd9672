"""Root conftest: make the ``src`` layout importable without installing.

pytest's default ``prepend`` import mode only inserts the test directory
into ``sys.path``, so ``mangrove_lulc`` would otherwise resolve only after
``pip install -e .``.
"""

import os
import sys

# Insert src/ at position 0 so it takes priority
_SRC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)
