#!/usr/bin/env python3
"""A CLI for the openwebnet library: parse frames, or talk to a gateway."""
