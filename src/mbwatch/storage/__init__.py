from mbwatch.storage.state_store import StateStore, snapshot_to_dict

__all__ = ["StateStore", "snapshot_to_dict"]
