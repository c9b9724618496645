from fastapi import FastAPI
from deploy_engine.api.routes.deployments import router as deployments_router

app = FastAPI(title="Deploy Engine API")

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(deployments_router)
