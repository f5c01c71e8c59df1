class SolanaRpcError(Exception):
    pass


class SolanaRpcRateLimitError(SolanaRpcError):
    pass
