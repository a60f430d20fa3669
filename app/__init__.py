"""
Application Package

Entry points built on top of the stream manager:
- cli.py: the zaif-stream command (print live events for a set of pairs)
"""
