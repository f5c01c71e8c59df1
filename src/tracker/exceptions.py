class WalletTrackerError(Exception):
    pass


class TransactionNotFound(WalletTrackerError):
    pass


class MissingTransactionMeta(WalletTrackerError):
    pass


class WalletNotInTransaction(WalletTrackerError):
    pass


class MalformedMetadata(WalletTrackerError):
    pass


class MetadataFetchFailure(WalletTrackerError):
    pass
