# WebSocket event type definitions.
# Payloads are broadcast per server; clients apply them to their channel store.

CHANNEL_CREATE = "channel.create"
CHANNEL_UPDATE = "channel.update"
CHANNEL_DELETE = "channel.delete"
CHANNEL_REORDER = "channel.reorder"

CATEGORY_CREATE = "category.create"
CATEGORY_UPDATE = "category.update"
CATEGORY_DELETE = "category.delete"
CATEGORY_REORDER = "category.reorder"
