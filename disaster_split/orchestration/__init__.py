"""
End-to-end pipeline wiring: cache → fetch → group → write.
"""
