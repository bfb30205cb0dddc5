"""
STARK - Virtual CFO Agent Backend

A conversational financial assistant that lets a language model read
and change a monthly ledger through a fixed set of tools.

DESIGN PRINCIPLES:
1. The model asks, the executor acts
2. Every tool result is attributable to the call that asked for it
3. Tool failures are answers, not crashes
4. The loop always terminates
5. Storage and model provider are swappable
"""

__version__ = "2.0.0"
__author__ = "Starken Tecnologia"
