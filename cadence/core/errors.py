class CadenceError(Exception):
    pass


class NotFoundError(CadenceError):
    def __init__(self, kind: str, ref: str):
        self.kind = kind
        self.ref = ref
        super().__init__(f"no {kind} found: '{ref}'")


class ValidationError(CadenceError):
    pass


class ConflictError(CadenceError):
    pass


class StateError(CadenceError):
    pass


class AmbiguousError(CadenceError):
    def __init__(self, ref: str, count: int = 0, sample: list[str] | None = None):
        self.ref = ref
        self.count = count
        self.sample = sample or []
        count_note = f" ({count})" if count else ""
        note = f": {', '.join(self.sample)}" if self.sample else ""
        super().__init__(f"'{ref}' matches more than one record{count_note}{note}")
