from mockup_forge.cli import main

main()
