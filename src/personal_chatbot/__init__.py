"""Personal chatbot conversation engine.

Takes one user message per turn, runs it through interceptors, calls the
configured model backend until it produces a final reply, and dispatches any
tool calls the model makes along the way.
"""

__version__ = "0.1.0"
