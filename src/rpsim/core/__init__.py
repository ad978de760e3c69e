"""Simulation harness: topology, transport, runtime and tick driver."""
