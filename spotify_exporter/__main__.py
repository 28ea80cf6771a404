from spotify_exporter.cli import main

main()
