from uagents import Protocol

# bump when you change any model/replies
math_proto_v1 = Protocol(name="MathVisionProtocol", version="1.0.0")
# Handlers are registered in fetch_agent.py.
