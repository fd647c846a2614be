"""Solarcrew - Project lifecycle and reclamation workflow service.

This package provides the status transition engine for solar-installation
projects, the reclamation (defect-remediation) workflow for installation
crews, and the FastAPI surface and CLI built on top of them.
"""

__version__ = "0.1.0"
