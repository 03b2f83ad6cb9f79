from anygpt.cli import main

main()
