"""dbusfuzz: black-box fuzzer for processes exposed on D-Bus."""

__version__ = "0.1.0"
