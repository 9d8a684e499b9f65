HANDLERS = {}


def _key(kind):
    return getattr(kind, "value", kind)


def register(kind):
    def decorator(fn):
        HANDLERS[_key(kind)] = fn
        return fn
    return decorator


def get_handler(kind):
    return HANDLERS.get(_key(kind))


def list_handlers():
    return list(HANDLERS.keys())
