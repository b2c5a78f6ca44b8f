"""
Rekon - reconcile declarative AWS resource records against the live account.

This package provides lifecycle handlers for SSM associations and SageMaker
model package group policies, plus a CLI and REST API that drive them.
"""

__version__ = "0.1.0"
__author__ = "Rekon"
