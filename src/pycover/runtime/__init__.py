"""Runtime support imported by instrumented code."""
