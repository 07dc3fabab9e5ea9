from spellbinder.client.image_sync import ImageSyncClient, ImageSyncPoller

__all__ = ["ImageSyncClient", "ImageSyncPoller"]
