"""Solana program ids and account layout constants used by the tracker."""

# Metaplex Token Metadata program
METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
METADATA_SEED = b"metadata"

# Metadata account: key (1) + update_authority (32) + mint (32)
METADATA_HEADER_SIZE = 1 + 32 + 32

# SPL Token mint layout: decimals is a single u8 at offset 44
MINT_DECIMALS_OFFSET = 44

LAMPORTS_PER_SOL = 1_000_000_000
SOL_DECIMALS = 9

NATIVE_ASSET = "native"
