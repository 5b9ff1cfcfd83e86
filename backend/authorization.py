import threading

import structlog

logger = structlog.get_logger(__name__)


class AuthorizationFlag:
    """
    Holds whether Wi-Fi scanning is allowed and pushes changes to subscribers.
    New subscribers get the current value straight away.
    """

    def __init__(self, authorized=False):
        self._value = bool(authorized)
        self._listeners = []
        self._lock = threading.Lock()

    @property
    def authorized(self):
        return self._value

    def subscribe(self, callback):
        with self._lock:
            self._listeners.append(callback)
            value = self._value
        callback(value)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def set(self, authorized):
        authorized = bool(authorized)
        with self._lock:
            if authorized == self._value:
                return False
            self._value = authorized
            listeners = list(self._listeners)
        logger.info("authorization_set", authorized=authorized)
        for listener in listeners:
            listener(authorized)
        return True
