"""Brave Call: a children's companion backend.

A child talks with an animated character; every turn passes through a
safety-and-escalation pipeline before and after the reply is generated, and
the parent portal surfaces alerts raised by that pipeline.
"""

__version__ = "0.1.0"
