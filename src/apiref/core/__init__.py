"""Core primitives: snapshot elements, diffing, and the patch model.

Architecture Note:
    core/ holds pure data and stateless operations. Fetching lives in source/,
    history assembly in builds/, the entity graph in entities/ and persistence
    in codec/.
"""
