"""
Messenger backend

Account deletion engine plus the HTTP and command-line surfaces that
trigger it.
"""

__version__ = "2.0.0"
