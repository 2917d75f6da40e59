"""chainpay — on-chain payment and recurring subscription backend."""

__version__ = "0.1.0"
