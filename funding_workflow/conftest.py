"""Root conftest: makes `funding_workflow.X` importable without installing."""
import sys
from pathlib import Path

_parent = Path(__file__).resolve().parent.parent

# Add repo root so `funding_workflow.X` works
if str(_parent) not in sys.path:
    sys.path.insert(0, str(_parent))
