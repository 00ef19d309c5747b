from pathlib import Path
import sys

# Make sonic_agent importable from src/ when the package is not installed
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
