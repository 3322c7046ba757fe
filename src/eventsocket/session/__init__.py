"""
Session package initialization.
Contains the inbound (client) and outbound (server) connection lifecycles.
"""

from .inbound import dial, dial_from_config
from .outbound import listen_and_serve, serve, serve_from_config
