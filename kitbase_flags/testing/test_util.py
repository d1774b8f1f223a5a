class SpyListener:
    def __init__(self):
        self._events = []

    def __call__(self, event):
        self._events.append(event)

    @property
    def events(self):
        return self._events
