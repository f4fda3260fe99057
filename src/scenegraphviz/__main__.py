"""Command-line interface."""
from scenegraphviz.main import main

if __name__ == "__main__":
    main()
