"""
Core Package

Contains the exchange-agnostic streaming logic:
- StreamManager: owns per-pair connections and fans events into channels
- DeliveryChannel: caller-owned per-pair event queue with close signalling
- StreamConnection: abstract contract every per-pair connection implements
- Schemas: Pydantic models for decoded stream events
"""
