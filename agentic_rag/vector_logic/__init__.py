"""
Vector-space building blocks: chunking, the vector store client and
semantic intent routing over the action catalog.
"""
