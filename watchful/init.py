from .scheduler import scheduler


def init(mode="asyncio"):
    if mode == "asyncio":
        scheduler.register_asyncio()
    else:
        raise ValueError(f"Unsupported mode: {mode!r}")
