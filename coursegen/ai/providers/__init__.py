from coursegen.ai.providers.base import AIModel, ModelFactory, RepairTextHook, StructuredModelResponse

__all__ = ["AIModel", "ModelFactory", "RepairTextHook", "StructuredModelResponse"]
