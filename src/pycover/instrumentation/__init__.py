"""
The coverage instrumentation pass.

- symbols.py: naming phase, symbol tables and scope graphs
- prephase.py: removal of typing.Final qualifiers
- location.py: location tracking during the traversal
- sequence.py: probe calls and the sequence rewrite
- transformer.py: the instrumentation transformer
"""
