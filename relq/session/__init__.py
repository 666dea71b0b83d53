"""Transaction, LISTEN/NOTIFY and listener-connection support."""

from relq.session.listener import ListenerConnection, Subscription
from relq.session.pubsub import ListenBuilder, NotifyBuilder, UnlistenBuilder
from relq.session.transaction import SavepointBuilder, TransactionBuilder

__all__ = [
    "ListenBuilder",
    "ListenerConnection",
    "NotifyBuilder",
    "SavepointBuilder",
    "Subscription",
    "TransactionBuilder",
    "UnlistenBuilder",
]
