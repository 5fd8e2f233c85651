#!/usr/bin/env python3
"""
HL7 Field Explorer Command Line Tool

Parses HL7 v2.x files to JSON, annotating every field and component with its
dictionary label and EMR configurability.

Usage:
    python main.py input.hl7                               # Parse input.hl7 to input.json
    python main.py input.hl7 output.json                   # Parse to specific output file
    python main.py input.hl7 --data-dir ./my-data          # Use custom dictionary data
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Try importing from installed package first, fallback to src path
try:
    from hl7_parser import Hl7Parser, format_hl7_timestamp
    from hl7_models import Hl7Message
    from field_dictionary import FieldDictionary
    from configurability import ConfigurabilityResolver
    from dictionary_models import SeedDataError
    from explorer_settings import Settings
except ImportError:
    # Add src to path for imports when not installed
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from hl7_parser import Hl7Parser, format_hl7_timestamp
    from hl7_models import Hl7Message
    from field_dictionary import FieldDictionary
    from configurability import ConfigurabilityResolver
    from dictionary_models import SeedDataError
    from explorer_settings import Settings


def annotate_message(message: Hl7Message, resolver: ConfigurabilityResolver) -> Dict[str, Any]:
    """Builds the JSON view of a message with labels and configurability per position."""
    segments: List[Dict[str, Any]] = []
    for segment in message.segments:
        definition = resolver.dictionary.segment_definition(segment.name)
        fields = []
        for field in segment.fields:
            fields.append({
                "position": field.position,
                "label": resolver.label_for(field.position),
                "value": field.value,
                "repetitions": field.repetitions,
                "configurable": resolver.is_configurable(field.position),
                "components": [
                    {
                        "position": component.position,
                        "label": resolver.label_for(component.position),
                        "value": component.value,
                        "configurable": resolver.is_configurable(component.position),
                    }
                    for component in field.components
                ],
            })
        segments.append({
            "name": segment.name,
            "description": definition.name if definition else None,
            "fields": fields,
        })

    return {
        "fileName": message.file_name,
        "messageType": message.message_type,
        "timestamp": message.timestamp,
        "formattedTimestamp": format_hl7_timestamp(message.timestamp),
        "segments": segments,
    }


def parse_hl7_file(input_file: str, output_file: str, data_dir: Path) -> int:
    """Parse an HL7 file and save the annotated results to JSON."""

    print(f"HL7 Field Explorer - Processing {input_file}")
    print("=" * 50)

    try:
        print(f"Loading HL7 file: {input_file}")
        with open(input_file, 'r', encoding='utf-8') as f:
            hl7_content = f.read()
        print(f"Loaded {len(hl7_content)} characters")

        print(f"Loading field dictionary from: {data_dir}")
        dictionary = FieldDictionary.from_directory(data_dir)
        resolver = ConfigurabilityResolver.from_file(dictionary, data_dir)
        print(f"Known segments: {', '.join(dictionary.known_segment_codes()) or 'none'}")

        parser = Hl7Parser(hl7_content, file_name=Path(input_file).name)
        messages = parser.parse()

        print(f"\nParsing Results:")
        print(f"  Messages: {len(messages)}")
        for i, message in enumerate(messages):
            print(f"  {i+1}. {message.message_type or 'Unknown'} "
                  f"({format_hl7_timestamp(message.timestamp) or 'no timestamp'}) - {len(message.segments)} segments")

        json_output = json.dumps([annotate_message(m, resolver) for m in messages], indent=2, ensure_ascii=False)
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(json_output)

        print(f"\nJSON output saved to: {output_file}")
        return 0

    except FileNotFoundError as e:
        print(f"Error: File not found: {e}")
        return 1
    except OSError as e:
        print(f"Error reading or writing files: {e}")
        return 1
    except SeedDataError as e:
        print(f"Error: Invalid dictionary data: {e}")
        return 1


def main(argv=None):
    """Main entry point with command line argument parsing."""
    settings = Settings()

    parser = argparse.ArgumentParser(
        description="Parse HL7 v2.x files to annotated JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py orders.hl7                         # Parse orders.hl7 -> orders.json
  python main.py orders.hl7 output.json             # Parse to specific output
  python main.py orders.hl7 --log-level DEBUG       # Trace every segment
        """
    )

    parser.add_argument('input_file', help='Input HL7 file')
    parser.add_argument('output_file', nargs='?',
                        help='Output JSON file (default: input_file.json)')
    parser.add_argument('--data-dir', type=Path, default=settings.data_dir,
                        help='Directory holding field-definitions/ and emr-config/')
    parser.add_argument('--log-level', default=settings.log_level,
                        help='Logging level (default: INFO)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
    )

    if not args.output_file:
        args.output_file = str(Path(args.input_file).with_suffix('.json'))

    if not Path(args.input_file).exists():
        print(f"Error: Input file not found: {args.input_file}")
        return 1

    return parse_hl7_file(args.input_file, args.output_file, args.data_dir)


if __name__ == "__main__":
    sys.exit(main())
