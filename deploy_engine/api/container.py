#deploy_engine\api\container.py
from deploy_engine.container import build_deployer


def get_deployer_factory():
    return build_deployer
