import asyncio
import logging

from reconnecting_ws import ClientOptions, WebSocketClient


async def main():
    logging.basicConfig(level=logging.INFO)

    client = WebSocketClient(
        options=ClientOptions(
            min_retry_time_ms=1_000,
            reconnect_jitter_range_ms=500,
            ping_enabled=True,
            ping_interval_ms=5_000,
        )
    )

    client.on("connected", lambda: print("Connected"))
    client.on("reconnected", lambda: print("Reconnected"))
    client.on(
        "disconnected",
        lambda info: print("Connection lost") if info.is_first_failure else None,
    )
    client.on("reconnecting", lambda n, delay: print(f"Retry #{n} in {delay:.0f}ms"))
    client.on("message", lambda data: print(">>>", data))

    client.initialize("ws://127.0.0.1:4000/api/v4/websocket")

    await asyncio.sleep(2)
    client.send_message("user_typing", {"channel_id": "town-square"})

    # Kill the server meanwhile to watch the reconnect cycle
    await asyncio.sleep(60)
    client.close()

asyncio.run(main())
