# HTTP API for scenepack
