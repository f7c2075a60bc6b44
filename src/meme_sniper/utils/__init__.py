"""Chain-level building blocks: field codec, fractions, multicall, RPC and polling."""
