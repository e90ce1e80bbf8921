"""
Workflow CLI 진입점

실행 방법:
    python -m workflow create HALAL01 --supply 1000 --kind BOND
    python -m workflow publish HALAL01 --price 0.01
    python -m workflow redeem-bond HALAL01 --principal 0.01 --profit-rate 0.2
"""

from workflow.bootstrap import run

if __name__ == "__main__":
    run()
