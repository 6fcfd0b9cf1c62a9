"""Internal engine components used by :class:`pyfarmbot.client.FarmbotClient`."""
