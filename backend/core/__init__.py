"""Core trend analysis, signal and simulated trading logic.

This package contains pure business logic with no I/O dependencies
(no network, no files, no notifications). It is shared between the
live price monitor (app/) and the replay tool (backtest/).
"""
