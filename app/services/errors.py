class DeviceNotFoundError(Exception):
    def __init__(self, device_id: str):
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


class DeviceModelNotFoundError(Exception):
    def __init__(self, device_model_id: str):
        super().__init__(f"Device model not found: {device_model_id}")
        self.device_model_id = device_model_id


class ReconciliationError(Exception):
    """An inbound event could not be applied and should be redelivered."""
