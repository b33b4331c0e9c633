"""Session domain services: scoring and the aggregation state machine.

Pure scoring lives in ``scoring``; ``controller`` owns every mutation of a
session and its result. HTTP routes and socket handlers import from here,
keeping transport concerns separated from the session rules.
"""
