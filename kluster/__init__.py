"""
kluster - run single-node k3s clusters on multipass virtual machines.
"""

__version__ = "0.1.0"
