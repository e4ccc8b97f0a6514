"""
Neural network components for the TD agent.

- QNetwork: MLP over encoded temporal inputs
- QModel / QValues: predict / fit / random_output adapter used by TDAgent
"""

from .q_network import QNetwork
from .model import QModel, QValues

__all__ = [
    'QNetwork',
    'QModel',
    'QValues',
]
