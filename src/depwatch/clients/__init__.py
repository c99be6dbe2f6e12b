from depwatch.clients.rpc import RPC

__all__ = ["RPC"]
