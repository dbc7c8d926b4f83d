# kvserver

An in-memory key-value store. It keeps plain string values and sorted sets
(members ordered by score, then by name) in one keyspace. Commands and
replies use a compact length-prefixed binary protocol, and per-client
buffering handles requests that arrive split or back to back.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

`kvserver.commands.Store.execute` takes a list of arguments (bytes or str)
and returns one serialized reply value.

| Command                                 | Reply                                                              |
|-----------------------------------------|--------------------------------------------------------------------|
| `GET key`                               | the string value, or nil if the key is absent                      |
| `SET key value`                         | nil                                                                |
| `DEL key`                               | integer 1 if a key was removed, otherwise 0                        |
| `KEYS`                                  | array of every key                                                 |
| `ZADD key score name`                   | integer 1 if the member is new, 0 if its score was updated         |
| `ZSCORE key name`                       | the member's score as a double, or nil                             |
| `ZRANK key name`                        | the member's zero-based rank, or a NOT_FOUND error                 |
| `ZREM key name`                         | integer 1 if the member was removed, otherwise 0                   |
| `ZQUERY key score name offset limit`    | flat array of name, score pairs                                    |

`ZQUERY` finds the first member at or after `(score, name)` in sorted
order, moves `offset` places from there, and returns members until `limit`
array items have been written. Each member takes two array items, its name
and its score. A `limit` of zero or less gives an empty array.

A key that does not exist counts as an empty sorted set. Some requests
reply with a typed error (`kvserver.protocol.ErrorCode`) instead:

- a sorted-set command on a string key, or `GET`/`SET` on a sorted-set key;
- a score or offset/limit argument that is not a number;
- an unknown command or a wrong number of arguments.

## Wire format

Each message is a 4-byte little-endian length followed by that many bytes.
A request body holds a 32-bit count of strings (at most 200,000), then each
string as a 32-bit length followed by its bytes.

A reply body is a single tagged value:

| Tag | Type   | Payload                                              |
|-----|--------|------------------------------------------------------|
| 0   | nil    | none                                                 |
| 1   | error  | 32-bit code, 32-bit length, message                  |
| 2   | string | 32-bit length, bytes                                 |
| 3   | int    | signed 64-bit                                        |
| 4   | double | 64-bit IEEE 754                                      |
| 5   | array  | 32-bit count, followed by that many values           |

All integers are little-endian. Messages longer than 32 MiB are refused; a
reply that would be longer is replaced by a TOO_BIG error.

## Using it

`kvserver.protocol` encodes requests and decodes replies:

```python
from kvserver.protocol import encode_request, decode_value, parse_request

body = encode_request(["SET", "greeting", "hello"])
assert parse_request(body) == [b"SET", b"greeting", b"hello"]
```

`decode_value` turns nil into `None`, strings into `bytes`, integers into
`int`, doubles into `float`, arrays into lists and errors into a
`(code, message)` tuple. `ResponseWriter` builds reply values.

`kvserver.commands.Store` holds the keyspace:

```python
from kvserver.commands import Store
from kvserver.protocol import decode_value

store = Store()
store.execute(["ZADD", "board", "1.5", "alice"])
store.execute(["ZADD", "board", "2.0", "bob"])
print(decode_value(store.execute(["ZRANK", "board", "bob"])))  # 1
print(store.keys())
```

`kvserver.zset.ZSet` is the sorted set on its own:

```python
from kvserver.zset import ZSet

zs = ZSet()
zs.insert("alice", 1.5)
zs.insert("bob", 2.0)
print(zs.lookup("bob"), zs.rank("bob"), len(zs))
print(zs.query(0.0, "", 0, 10))
```

`kvserver.connection.Connection` holds one client's buffers. Pass it the
bytes read from the client with `feed` (empty bytes means the client closed);
it answers every complete request. `pending` returns the framed replies
waiting to be sent, and `consume` drops the bytes that were sent. The
`want_read`, `want_write` and `want_close` attributes say what the
connection waits for. `take_message` and `frame_response` do the framing on
their own.

## What it does not do

The package has no network server and no command to start one: it does not
open sockets, accept clients or run an event loop. To serve clients over
TCP, read from and write to your sockets yourself and hand the bytes to a
`Connection`. Data is kept in memory only and is not saved anywhere.