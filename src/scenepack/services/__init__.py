# Service layer for scenepack
