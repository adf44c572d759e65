"""Event names carried in `{"event": ..., "data": ...}` frames."""

LIST_CREATED = "list:created"
LIST_UPDATED = "list:updated"
LIST_DELETED = "list:deleted"
LIST_SHARED = "list:shared"
LIST_UNSHARED = "list:unshared"

TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
TASK_DELETED = "task:deleted"
TASK_SHARED = "task:shared"
TASK_UNSHARED = "task:unshared"

NOTIFICATION_CREATED = "notification:created"

# Client → server
LISTS_SUBSCRIBE = "lists:subscribe"
PING = "ping"
PONG = "pong"

SERVER_EVENTS = frozenset({
    LIST_CREATED, LIST_UPDATED, LIST_DELETED, LIST_SHARED, LIST_UNSHARED,
    TASK_CREATED, TASK_UPDATED, TASK_DELETED, TASK_SHARED, TASK_UNSHARED,
    NOTIFICATION_CREATED,
})
