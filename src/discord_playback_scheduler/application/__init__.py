"""
Application Layer

Orchestrates domain objects and infrastructure adapters to fulfil use cases.

Structure:
- services/: The per-guild player, the connection manager and the
  playback service that command adapters call
- interfaces/: Port interfaces for infrastructure adapters
"""
