"""Todoist CLI: command line access to the Todoist REST API."""

__version__ = "0.1.0"
