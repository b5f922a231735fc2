class UpstreamError(RuntimeError):
    pass
