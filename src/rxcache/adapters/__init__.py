"""Framework adapters for rxcache."""
