"""Greetings, delivered after a (simulated) network round trip"""
# amphi: asynchronous
import asyncio
# amphi: blocking
import time

from greeter.amphi.styling import decorate


# amphi: blocking
def pause():
    time.sleep(0)


# amphi: asynchronous
async def pause():
    await asyncio.sleep(0)


async def greet(name):
    await pause()
    return decorate(f"hello {name}")


class Greeter:
    """Greet everyone in `names`, one at a time"""

    def __init__(self, names):
        self.names = names

    def __aiter__(self):
        self._it = iter(self.names)
        return self

    async def __anext__(self):
        try:
            name = next(self._it)
        except StopIteration:
            raise StopAsyncIteration
        return await greet(name)


# amphi-mod: styling
