"""
The MODEL layer contains pure data structures and pure functions.
It has NO knowledge of the GUI (Qt) or the Visualization (PyVista).
It deals with the scene graph, render configuration, colors and primitives.
"""
