"""Zen reference interpreter: indentation-scoped scope tree plus a block executor."""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
