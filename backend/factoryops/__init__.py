"""FactoryOps purchasing backend"""
