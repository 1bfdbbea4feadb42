from functions import Consts, logger_ovslab


class BridgeStateStore:
    """
    Keeps the active playground in the bridge's own external_ids.

    The bridge is the only state that survives between invocations, so the
    playground identity lives on it. Every call is a no-op when the bridge is
    missing, and a missing key reads as None.
    """

    PLAYGROUND_KEY = "playground"
    NAME_KEY = "playground_name"
    VERSION_KEY = "playground_version"
    DESCRIPTION_KEY = "playground_desc"

    def __init__(self, switch, max_length=Consts.METADATA_MAX_LENGTH):
        self.switch = switch
        self.max_length = max_length

    def set_active_playground(self, bridge, name):
        if not self.switch.exists(bridge):
            return False
        if self.switch.set_property(bridge, f"external_ids:{self.PLAYGROUND_KEY}", name):
            logger_ovslab.info(f"Playground state saved: {name}")
            return True
        logger_ovslab.warning(f"Failed to save playground state on {bridge}")
        return False

    def get_active_playground(self, bridge):
        if not self.switch.exists(bridge):
            return None
        return self._normalize(self.switch.get_external_id(bridge, self.PLAYGROUND_KEY))

    def clear_active_playground(self, bridge):
        if not self.switch.exists(bridge):
            return False
        return self.switch.set_property(bridge, f"external_ids:{self.PLAYGROUND_KEY}", "")

    def find_active_bridge(self, preferred):
        """
        Bridge holding the active playground.

        A playground may run on a bridge of its own, so when the preferred bridge
        carries no playground every other bridge is searched. Falls back to the
        preferred bridge when none does.
        """
        if self.get_active_playground(preferred):
            return preferred
        for bridge in self.switch.list_bridges():
            if bridge != preferred and self.get_active_playground(bridge):
                logger_ovslab.debug(f"Active playground found on bridge {bridge}")
                return bridge
        return preferred

    def set_metadata(self, bridge, display_name="", version="", description=""):
        if not self.switch.exists(bridge):
            return False

        fields = {
            self.NAME_KEY: display_name,
            self.VERSION_KEY: version,
            self.DESCRIPTION_KEY: description,
        }
        saved = True
        for key, value in fields.items():
            # an empty value overwrites what a previous playground left behind
            if not self.switch.set_property(bridge, f"external_ids:{key}", str(value or "")[:self.max_length]):
                logger_ovslab.warning(f"Failed to save {key} on {bridge}")
                saved = False
        return saved

    def get_metadata(self, bridge):
        if not self.switch.exists(bridge):
            return {}
        return {
            key: self._normalize(self.switch.get_external_id(bridge, key))
            for key in (self.NAME_KEY, self.VERSION_KEY, self.DESCRIPTION_KEY)
        }

    @staticmethod
    def _normalize(value):
        if value is None:
            return None
        value = str(value).strip().strip('"')
        if value in ("", "[]"):
            return None
        return value
