"""Core primitives for cadence: errors, logging, settings, timestamps, scheduling."""
