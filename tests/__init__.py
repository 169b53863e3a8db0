"""Test package for the Simon task.

Core tests drive the scheduler, capture state machine and trial wiring with a
fake clock and a cooperative timer queue, so no real time passes. The smoke
test runs the pygame shell headlessly using SDL's dummy drivers. To run these
tests, execute ``pytest`` from the project root.
"""
