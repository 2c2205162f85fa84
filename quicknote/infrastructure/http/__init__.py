"""HTTP plumbing: pooled httpx clients per credential."""
