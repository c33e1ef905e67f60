"""litepipe SDK - the sqlite3 shell as an asyncio query engine.

## Core Modules

### Streams (`litepipe.sdk.stream`)
Subprocess supervision, prompt synchronization, CSV parsing, sessions,
lazy readers, async callback queries and transactions.

### Core (`litepipe.sdk.core`)
Package name and version.

## Quick Start

```python
from litepipe.sdk.stream import StreamRuntime, StreamSession

async with StreamRuntime() as runtime:
    session = await StreamSession.open("app.db", runtime=runtime)
    await session.execute("CREATE TABLE t(a, b)")
    rows = await session.invoke_query("SELECT * FROM t")
```
"""
