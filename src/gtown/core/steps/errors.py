"""Errors raised by the step runner."""


class ProtocolError(Exception):
    """A run request that conflicts with the persisted run state.

    Examples: starting a fresh run while another one is suspended, continuing
    when nothing is suspended, or skipping a step that may not be skipped.
    Raising this never changes the repository or the persisted state.
    """
