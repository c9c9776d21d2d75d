from regexp_or_gate.cli import main

main()
