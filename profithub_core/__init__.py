"""
Profithub Core - Market Data and Signal Generation Engine

Client-side core of the Profithub digit trading dashboard. Keeps a live
connection to the Deriv quote feed, derives digit statistics from every
tick, evaluates digit-trading bots against them and tracks the trades
those bots take.
"""

__version__ = "0.1.0"
__author__ = "Profithub Team"
