from pairlist.producer.client import ProducerClient, remote_pair_provider
from pairlist.producer.errors import FatalHttpError, ProducerHttpError, RateLimitedError, TransientHttpError

__all__ = [
    "FatalHttpError",
    "ProducerClient",
    "ProducerHttpError",
    "RateLimitedError",
    "TransientHttpError",
    "remote_pair_provider",
]
