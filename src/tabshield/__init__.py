"""tabshield: per-tab request blocking core.

Filter lists are fetched, preprocessed and cached per source, compiled into
one immutable Engine, and every outbound request of a tab is run through a
decision pipeline that keeps live per-tab statistics.
"""
__version__ = "0.1.0"
