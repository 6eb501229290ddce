"""Charge definition lifecycle rules and command values.

Nothing in this package touches the database or the transport; services
look up state and hand it to these rules.
"""
