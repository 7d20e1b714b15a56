from .upstream import DispatchMode, UpstreamDispatcher, UpstreamResult
from .rpc import RpcForwarder

__all__ = ['DispatchMode', 'UpstreamDispatcher', 'UpstreamResult', 'RpcForwarder']
