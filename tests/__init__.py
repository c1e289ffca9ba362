"""Test suite for netdev-telnet."""
