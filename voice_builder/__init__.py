"""
Voice Builder: a five-question voice interview that produces a Playlab.ai
assistant template.
"""

__version__ = "0.1.0"
