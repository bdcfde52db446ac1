from craftlink.listeners.minecraft import MinecraftEventListener

__all__ = ["MinecraftEventListener"]
