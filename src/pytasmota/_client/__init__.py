"""Internal collaborators of :class:`pytasmota.client.TasmotaClient`."""
