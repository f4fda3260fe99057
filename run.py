"""
Development Runner
==================
Launches the viewer straight from a source checkout, without installing it.

The package lives under 'src/', so that directory is put first on the import
path before 'scenegraphviz' is imported.

Usage:
    $ python run.py path/to/graph.h5 --debug
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from scenegraphviz.main import main

if __name__ == "__main__":
    main()
