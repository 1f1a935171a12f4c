# gochat

The messaging core of a chat service, as an asyncio library. It has three parts.

- **A WebSocket message server** (`gochat.server.Server`). It routes JSON frames to your handlers by method name. It keeps track of which user owns which connection. It supports three acknowledgement modes and can close connections that stay idle too long.
- **A WebSocket client** (`gochat.client.Client`). It sends and reads JSON values. If a send fails, it dials again once and retries.
- **MongoDB-backed storage and conversation logic.**
  - `gochat.store` stores chat logs, shared conversations and per-user conversation lists.
  - `gochat.rpc.ImService` builds on those stores. It sets up private and group conversations, pages through chat history, counts unread messages and records read progress.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Frames

A frame on the wire is a JSON object with the keys `frameType`, `id`, `ackSeq`, `ackTime`, `errCount`, `method`, `fromId` and `data`. In Python a frame is a `gochat.message.Message`.

```python
from gochat.message import FrameType, Message, new_message, new_err_message

msg = new_message("user-1", {"content": "hello"})
text = msg.to_json()
assert Message.from_json(text).frame_type is FrameType.DATA

err = new_err_message(ValueError("bad input"))   # FrameType.ERR, data="bad input"
```

The frame types are:

| Frame type | Value |
|---|---|
| `DATA` | 0 |
| `PING` | 1 |
| `ACK` | 2 |
| `NO_ACK` | 3 |
| `ERR` | 9 |

A `Message` with no `ack_time` encodes it as the zero time, `0001-01-01T00:00:00Z`. Decoding that value gives `None` again.

The `data` field of a chat frame holds one of the payloads in `gochat.payloads`: `Msg`, `Chat`, `Push` or `MarkRead`.

- Each payload has `from_dict` and `to_dict`.
- `from_dict` matches keys case-insensitively. Missing keys take their defaults.
- `from_dict` raises `ValueError` when a field has the wrong type.

## Running a server

```python
import asyncio

from gochat.ack import AckType
from gochat.message import Route, new_message
from gochat.options import ServerOptions
from gochat.server import Server


async def echo(server, conn, msg):
    await server.send(new_message(conn.uid, msg.data), conn)


async def main():
    server = Server("127.0.0.1:1234", ServerOptions(ack=AckType.ONLY_ACK))
    server.add_routes([Route(method="echo", handler=echo)])
    await server.start()  # runs until server.stop() is called


asyncio.run(main())
```

### Startup and shutdown

- `Server.start()` listens on the given address. It accepts upgrades only on `ServerOptions.pattern` (default `/ws`) and answers 404 on any other path.
- Once the server is listening, `Server.ready` is set and `Server.bound_address` holds the host and port. Use port `0` to let the system pick a port.
- `Server.stop()` makes `start()` return.

### Frame handling

Handlers are called as `handler(server, conn, message)` and may be plain functions or coroutines. The server treats incoming frames as follows:

- A `PING` frame is answered with a `PING` frame.
- A `DATA` frame whose `method` has no route is answered with a `DATA` frame that says the method does not exist.
- A connection whose first read or JSON decoding fails is closed.

### Authentication

Authentication is pluggable:

1. Subclass `gochat.options.Authentication`.
2. Implement `authenticate(request)` and `user_id(request)`. Both may be coroutines.
3. Pass an instance as `ServerOptions(authentication=...)`.

The default, `DefaultAuthentication`, accepts everyone. It takes the user id from the `userId` query parameter, with the values written in square brackets, for example `[alice]`. Without that parameter, the user id is the current time in milliseconds.

A request that fails authentication receives a `DATA` frame saying it has no access, and is then closed. When a user connects a second time, the older connection is closed.

### Reaching connected users

| Method | What it does |
|---|---|
| `get_conn(uid)` | Returns the connection of one user. |
| `get_conns(*uids)` | Returns the connections of several users; `None` for users who are offline. |
| `get_users(*conns)` | Returns the user ids of the given connections, or of every connection. |
| `send(msg, *conns)` | Sends a frame, payload or plain JSON value to the given connections. |
| `send_by_user_ids(msg, *uids)` | Sends to the connections of the given users. |
| `close(conn)` | Closes a connection. |
| `schedule(func)` | Runs work in the background, at most `ServerOptions.concurrency` tasks at a time (default 10). |

### Acknowledgement modes

Set the mode with `ServerOptions.ack`:

- `AckType.NO_ACK` (default): frames go straight to their handlers.
- `AckType.ONLY_ACK`:
  1. Each incoming frame is queued.
  2. The server answers with an `ACK` frame carrying the same `id` and `ackSeq + 1`.
  3. The frame is then handled.
- `AckType.RIGOR_ACK`:
  1. The server sends an `ACK` frame.
  2. It waits for the client to echo an `ACK` frame for the same `id` with a higher `ackSeq`, and only then handles the frame.
  3. While it waits, it resends the `ACK` every 3 seconds.
  4. After `ServerOptions.ack_timeout` seconds (default 30) the frame is dropped.

In either ack mode, frames of type `NO_ACK` skip the queue.

### Idle connections

`ServerOptions.max_connection_idle` is a time in seconds and is unlimited by default. A connection that has not been read from for that long after its last write is closed. A value of zero or less keeps it unlimited.

## Talking to a server

```python
import asyncio

from gochat.client import Client
from gochat.options import DialOptions


async def main():
    client = await Client.connect("127.0.0.1:1234", DialOptions(pattern="/ws"))
    async with client:
        await client.send({"frameType": 0, "method": "echo", "data": "hi"})
        reply = await client.read()
        print(reply)


asyncio.run(main())
```

`DialOptions.headers` adds HTTP headers to the handshake. `Client.send` serialises any JSON value, `Message` or payload.

## Storage

`gochat.models` defines the stored documents:

- `ChatLog`
- `Conversation`
- `Conversations`
- `ChatType` (`GROUP = 1`, `SINGLE = 2`)

Each document has `to_document` and `from_document`. `parse_object_id` accepts a 24-digit hex string or an `ObjectId`.

`gochat.store` holds one store per collection:

| Store | Default collection |
|---|---|
| `ChatLogModel` | `chat_log` |
| `ConversationModel` | `conversation` |
| `ConversationsModel` | `conversations` |

Open a store with `connect(url, db, collection=None)`, or wrap an existing pymongo collection.

Every store has `insert`, `find_one`, `update` and `delete`. On top of those:

- `ChatLogModel.list_by_send_time(conversation_id, start, end, limit)` returns messages newest first.
  - With `end > 0` it returns messages in `(end, start]`.
  - Otherwise it returns messages sent strictly before `start`.
  - When `limit` is not positive, at most 100 are returned.
- `ChatLogModel.list_by_msg_ids` and `ChatLogModel.update_mark_read`.
- `ConversationModel.find_by_conversation_id`, `list_by_conversation_ids` and `update_msg`. `update_msg` adds one to the total and stores the latest message.
- `ConversationsModel.find_by_user_id` and `update_or_insert`.

Lookups that find nothing raise `gochat.models.NotFoundError`. Malformed ids raise `gochat.models.InvalidObjectIdError`.

## Conversations

```python
from gochat.models import ChatType
from gochat.rpc import ImService, ServiceContext

ctx = ServiceContext.from_mongo("mongodb://localhost:27017", "chat")
service = ImService(ctx)

service.set_up_user_conversation("alice", "bob", ChatType.SINGLE)
service.create_group_conversation("group-1", "alice")
conversations = service.get_conversations("alice")   # {conversation_id: ConversationEntry}
history = service.get_chat_log(conversation_id="alice_bob", start_send_time=1_700_000_000)
```

### Setting up conversations

- A private conversation has the id `<lower>_<higher>` of the two user ids, sorted. Pass your own function as `ServiceContext(combine_id=...)` to change this.
- The conversation is added to both users' lists. It is shown to the sender and hidden from the receiver.
- A group conversation uses the group id as its conversation id.

### Reading and updating

- `get_conversations` compares each user's read total with the conversation's total. Where the conversation has more messages, it fills in `to_read`, raises `total` to the conversation's total and sets `is_show`.
- `put_conversations(user_id, {conversation_id: ConversationEntry})` adds each entry's `read` count to what the user had read before.
- `get_chat_log(msg_id=...)` returns a single message.

`ServiceContext` accepts any objects with the store methods above. This makes it easy to test the service against in-memory stores.

## What this package does not do

This is a library. It does not provide:

- A command-line program or configuration loader to start a server.
- An HTTP API for the conversation service.
- Token-based authentication; only the pluggable `Authentication` hook and the accept-all default are included.
- Built-in chat routes such as sending, read marking or pushing messages to users.
- A message queue between the WebSocket server and storage.

Applications register their own routes and wire the server to the stores themselves.