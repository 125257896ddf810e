"""
Multifund — even-split batch distribution for the Bittensor network.

Splits a funding account's TAO across many payees and bundles the
transfers into Utility.batch_all extrinsics that stay under a
per-transaction instruction limit.
"""

__version__ = "0.2.0"
__author__ = "Multifund contributors"
